"""Chain block records and classifications."""

from .block import BIG_THRESHOLD, BlockRecord, BlockType, ClassificationAxis, SizeType

__all__ = [
    "BIG_THRESHOLD",
    "BlockRecord",
    "BlockType",
    "ClassificationAxis",
    "SizeType",
]
