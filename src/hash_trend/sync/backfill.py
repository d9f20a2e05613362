"""
Backfill: one-shot historical population of the store for a rule.

Why Backfill?
-------------
The live poller only ever moves forward from the newest held block. A rule
with a large stride keeps one block out of every `stride`, so a store full
of recent blocks may still show only a handful of points for it. Backfill
fetches exactly the heights such a rule selects, reaching back as far as
needed.

How It Works
------------
1. Fetch the chain head (fail fast: without a head nothing else is tried)
2. Round the head height down to the newest height aligned to the rule
3. Step backward by `stride` to collect up to `target_count` candidates,
   stopping at height 0 or, for anchored rules, below the anchor
4. Fetch every candidate; failures are logged and skipped
5. Merge everything fetched into the store in one go

Example
-------
Head 1000, stride 100, no anchor, 5 targets::

    anchor = 1000
    candidates = 1000, 900, 800, 700, 600
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hash_trend import metrics
from hash_trend.sampling import SamplingRule, align_down
from hash_trend.store import BlockStore

from .config import BACKFILL_COUNT, MAX_CONCURRENT_FETCHES
from .errors import BlockFetchFailed
from .fetcher import fetch_head, fetch_heights
from .source import BlockSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BackfillResult:
    """What a backfill run did."""

    rule_id: str
    """Rule the run was aligned to."""

    head_height: int
    """Chain head observed at the start of the run."""

    requested: tuple[int, ...]
    """Candidate heights, newest first."""

    fetched: int
    """Number of candidates fetched successfully."""

    added: int
    """Number of heights newly held by the store after the merge."""

    failures: tuple[BlockFetchFailed, ...] = ()
    """Candidates that could not be fetched."""

    @property
    def skipped_heights(self) -> list[int]:
        """Candidate heights that were skipped."""
        return [failure.height for failure in self.failures]


def candidate_heights(head_height: int, rule: SamplingRule, target_count: int) -> list[int]:
    """
    Compute the heights a backfill requests, newest first.

    Args:
        head_height: Current chain head.
        rule: Rule the heights must be aligned to.
        target_count: Maximum number of heights.

    Returns:
        Up to `target_count` aligned heights at or below the head. Heights
        at or below zero, and heights below an explicit anchor, are never
        produced.
    """
    anchor = align_down(head_height, rule)
    heights: list[int] = []

    for i in range(target_count):
        height = anchor - i * rule.stride
        if height <= 0:
            break
        if rule.anchor_height > 0 and height < rule.anchor_height:
            break
        heights.append(height)

    return heights


@dataclass(slots=True)
class BackfillLoader:
    """
    Populates the store with a historical window aligned to a rule.

    The loader does not own the store. It only ever calls `merge()`, so it
    can run while the live poller is active.
    """

    source: BlockSource
    """Where blocks come from."""

    store: BlockStore
    """Where fetched blocks go."""

    max_concurrent: int = MAX_CONCURRENT_FETCHES
    """Upper bound on fetches in flight."""

    async def backfill(self, rule: SamplingRule, target_count: int = BACKFILL_COUNT) -> BackfillResult:
        """
        Fetch up to `target_count` blocks aligned to the rule and merge them.

        Succeeds as long as the head could be fetched, even when every block
        fetch failed.

        Raises:
            HeadUnavailableError: If the chain head could not be fetched.
                No block fetch is attempted and the store is untouched.
        """
        head = await fetch_head(self.source)
        heights = candidate_heights(head.height, rule, target_count)

        logger.info(
            "Backfill: rule=%s head=%d candidates=%d (%s..%s)",
            rule.id,
            head.height,
            len(heights),
            heights[0] if heights else "-",
            heights[-1] if heights else "-",
        )

        batch = await fetch_heights(self.source, heights, self.max_concurrent)
        added = self.store.merge(batch.blocks)

        metrics.backfills.inc()

        if batch.failures:
            logger.warning(
                "Backfill: rule=%s skipped %d of %d heights",
                rule.id,
                len(batch.failures),
                len(heights),
            )

        return BackfillResult(
            rule_id=rule.id,
            head_height=head.height,
            requested=tuple(heights),
            fetched=len(batch.blocks),
            added=added,
            failures=tuple(batch.failures),
        )
