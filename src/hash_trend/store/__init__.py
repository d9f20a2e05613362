"""Bounded block store shared by the sync components and the views."""

from .block_store import BlockStore
from .config import DEFAULT_CAPACITY

__all__ = [
    "BlockStore",
    "DEFAULT_CAPACITY",
]
