"""
Bounded, deduplicated block store.

The store is the single source of truth for fetched blocks. Both the backfill
loader and the live poller write into it, and every view reads from it.

Invariants
----------
After every mutation:

1. **Unique heights**: no two records share a height.
2. **Bounded**: at most `capacity` records are held.
3. **Ordered**: the snapshot is strictly descending by height.

How Merging Works
-----------------
A merge never edits records in place. It builds the next contents from the
current ones plus the incoming records, then swaps them in:

1. Add every incoming record whose height is not held yet (dedup first, so
   an existing record is never overwritten)
2. Sort by height, highest first
3. Keep the `capacity` highest heights, evicting the rest

Records for one height describe the same block, so keeping the existing
record loses nothing. Merging the same records twice is a no-op.

Thread Safety
-------------
Merges read the current contents, recompute and replace them. A lock
serializes that sequence, so the loader and the poller may merge
concurrently, from tasks or threads. Readers get an immutable tuple and
never observe a half-built state.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field

from hash_trend import metrics
from hash_trend.chain import BlockRecord

from .config import DEFAULT_CAPACITY

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BlockStore:
    """Height-keyed block records, newest first, bounded by capacity."""

    capacity: int = DEFAULT_CAPACITY
    """Maximum number of records held. Lowest heights are evicted first."""

    _blocks: tuple[BlockRecord, ...] = field(default=(), repr=False)
    """Current contents, strictly descending by height."""

    _by_height: dict[int, BlockRecord] = field(default_factory=dict, repr=False)
    """Index over `_blocks` for membership and lookup."""

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    """Serializes merge and clear."""

    def __post_init__(self) -> None:
        """Reject capacities that could never hold a block."""
        if self.capacity < 1:
            raise ValueError(f"Store capacity must be at least 1, got {self.capacity}")

    def __len__(self) -> int:
        """Return the number of held records."""
        return len(self._blocks)

    def __contains__(self, height: int) -> bool:
        """Check if a record for this height is held."""
        return height in self._by_height

    def get(self, height: int) -> BlockRecord | None:
        """Get the record for a height, or None if not held."""
        return self._by_height.get(height)

    def merge(self, incoming: Iterable[BlockRecord]) -> int:
        """
        Merge records into the store.

        Args:
            incoming: Records in any order. Duplicates are allowed.

        Returns:
            Number of newly held heights, not counting records that were
            evicted right away because they fell below the capacity window.
        """
        with self._lock:
            by_height = dict(self._by_height)
            added: list[int] = []

            for block in incoming:
                if block.height not in by_height:
                    by_height[block.height] = block
                    added.append(block.height)

            if not added:
                return 0

            ordered = sorted(by_height.values(), key=lambda b: b.height, reverse=True)
            evicted = len(ordered) - self.capacity
            if evicted > 0:
                ordered = ordered[: self.capacity]
                logger.debug("Evicting %d blocks below height %d", evicted, ordered[-1].height)

            self._blocks = tuple(ordered)
            self._by_height = {block.height: block for block in ordered}
            metrics.store_size.set(len(self._blocks))

            return sum(1 for height in added if height in self._by_height)

    def snapshot(self) -> tuple[BlockRecord, ...]:
        """Return all held records, strictly descending by height."""
        return self._blocks

    def max_height(self) -> int:
        """Highest held height, 0 when the store is empty."""
        return self._blocks[0].height if self._blocks else 0

    def min_height(self) -> int:
        """Lowest held height, 0 when the store is empty."""
        return self._blocks[-1].height if self._blocks else 0

    @property
    def is_full(self) -> bool:
        """Check if the store holds `capacity` records."""
        return len(self._blocks) >= self.capacity

    def clear(self) -> None:
        """Drop every record."""
        with self._lock:
            self._blocks = ()
            self._by_height = {}
            metrics.store_size.set(0)
