"""
Block records and their classifications.

A block record is the only piece of chain data the engine handles. It is
produced by the data-access layer when a block is fetched and never changes
afterwards: the store may evict it, but nothing rewrites it.

Classifications
---------------
Every record carries two binary classifications, both derived from the
block's numeric result:

- **Parity**: ODD or EVEN.
- **Size**: BIG when the result reaches BIG_THRESHOLD, SMALL otherwise.

The grid layout and the legend counts read one of the two, selected by a
ClassificationAxis.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Final

from pydantic import Field

from hash_trend.types import StrictBaseModel

BIG_THRESHOLD: Final[int] = 5
"""Smallest result value classified as BIG."""


class BlockType(str, Enum):
    """Parity of a block's result value."""

    ODD = "ODD"
    EVEN = "EVEN"

    @classmethod
    def from_value(cls, value: int) -> BlockType:
        """Classify a result value by parity."""
        return cls.ODD if value % 2 else cls.EVEN


class SizeType(str, Enum):
    """Magnitude class of a block's result value."""

    BIG = "BIG"
    SMALL = "SMALL"

    @classmethod
    def from_value(cls, value: int) -> SizeType:
        """Classify a result value against BIG_THRESHOLD."""
        return cls.BIG if value >= BIG_THRESHOLD else cls.SMALL


class ClassificationAxis(str, Enum):
    """Which classification of a block a view is built on."""

    PARITY = "parity"
    """Reads `BlockRecord.type` (ODD / EVEN)."""

    SIZE = "size"
    """Reads `BlockRecord.size_type` (BIG / SMALL)."""

    @property
    def values(self) -> tuple[BlockType, BlockType] | tuple[SizeType, SizeType]:
        """The two classification values on this axis, in legend order."""
        if self is ClassificationAxis.PARITY:
            return (BlockType.ODD, BlockType.EVEN)
        return (SizeType.BIG, SizeType.SMALL)


class BlockRecord(StrictBaseModel):
    """
    An immutable, classified chain block.

    Heights are the identity of a record inside the store. Two records with
    the same height are expected to be identical, since they describe the
    same block.
    """

    height: int = Field(ge=0)
    """Block number on the chain."""

    hash: str
    """Block identifier. Opaque beyond display and search."""

    result_value: int = Field(ge=0)
    """Numeric result derived from the hash."""

    type: BlockType
    """Parity classification of `result_value`."""

    size_type: SizeType
    """Size classification of `result_value`."""

    timestamp: datetime
    """When the block was produced."""

    @classmethod
    def classified(
        cls,
        *,
        height: int,
        hash: str,
        result_value: int,
        timestamp: datetime,
    ) -> BlockRecord:
        """
        Build a record, deriving both classifications from the result value.

        This is the only way the data-access layer creates records, which
        keeps `type` and `size_type` consistent with `result_value`.
        """
        return cls(
            height=height,
            hash=hash,
            result_value=result_value,
            type=BlockType.from_value(result_value),
            size_type=SizeType.from_value(result_value),
            timestamp=timestamp,
        )

    def classify(self, axis: ClassificationAxis) -> BlockType | SizeType:
        """Return this block's classification on the given axis."""
        if axis is ClassificationAxis.PARITY:
            return self.type
        return self.size_type
