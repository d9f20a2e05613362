"""
Best-effort batch fetching.

Both sync operations fetch a list of heights and merge whatever arrived.
A single failed height must never cost the rest of the batch, so failures
are folded into the result next to the successes instead of being raised:

    heights --fetch each--> FetchBatch(blocks=[...], failures=[...])

Fetches run concurrently, bounded by a semaphore. Results keep the order of
the requested heights regardless of completion order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from hash_trend import metrics
from hash_trend.chain import BlockRecord

from .config import MAX_CONCURRENT_FETCHES
from .errors import BlockFetchFailed, HeadUnavailableError
from .source import BlockSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FetchBatch:
    """Outcome of fetching a list of heights."""

    blocks: list[BlockRecord] = field(default_factory=list)
    """Records fetched successfully, in request order."""

    failures: list[BlockFetchFailed] = field(default_factory=list)
    """Heights that were skipped, in request order."""

    @property
    def skipped_heights(self) -> list[int]:
        """Heights that could not be fetched."""
        return [failure.height for failure in self.failures]


async def fetch_head(source: BlockSource) -> BlockRecord:
    """
    Fetch the chain head.

    Raises:
        HeadUnavailableError: If the source fails for any reason.
    """
    try:
        head = await source.get_head()
    except Exception as exc:
        metrics.head_fetch_failures.inc()
        raise HeadUnavailableError(f"Chain head unavailable: {exc}") from exc

    metrics.head_height.set(head.height)
    return head


async def fetch_heights(
    source: BlockSource,
    heights: Sequence[int],
    max_concurrent: int = MAX_CONCURRENT_FETCHES,
) -> FetchBatch:
    """
    Fetch every height, skipping the ones that fail.

    Args:
        source: Where blocks come from.
        heights: Heights to fetch.
        max_concurrent: Upper bound on fetches in flight.

    Returns:
        The fetched records and the skipped heights.
    """
    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def fetch_one(height: int) -> BlockRecord | BlockFetchFailed:
        async with semaphore:
            try:
                block = await source.get_block(height)
            except Exception as exc:
                # Timeouts, missing blocks and transport errors are all equal here.
                logger.warning("Skipping block %d: %s", height, exc)
                metrics.block_fetch_failures.inc()
                return BlockFetchFailed(height=height, reason=str(exc) or type(exc).__name__)

        if block.height != height:
            logger.warning("Skipping block %d: source returned height %d", height, block.height)
            metrics.block_fetch_failures.inc()
            return BlockFetchFailed(height=height, reason=f"height mismatch ({block.height})")

        metrics.blocks_fetched.inc()
        return block

    outcomes = await asyncio.gather(*(fetch_one(height) for height in heights))

    batch = FetchBatch()
    for outcome in outcomes:
        if isinstance(outcome, BlockFetchFailed):
            batch.failures.append(outcome)
        else:
            batch.blocks.append(outcome)
    return batch
