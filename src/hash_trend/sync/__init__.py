"""
Block synchronization for the sampling engine.

What Is Sync?
-------------
The engine shows recent chain blocks, sampled by a rule. It cannot show
what it has not fetched, so two components keep the store filled:

1. **Backfill**: one-shot, rule-aligned history reaching back from the head
2. **Live polling**: recurring, follows the head forward block by block

The Challenge
-------------
- **Unreliable sources**: Individual block fetches fail; the batch must not
- **Overlap**: A slow poll must not be joined by the next timer firing
- **Concurrency**: Backfill and polling write to the same store

How It Works
------------
- Both components fetch through a BlockSource and merge into a BlockStore
- Per-height failures are recorded and skipped, never raised
- Only a failed head fetch surfaces, as HeadUnavailableError
"""

from __future__ import annotations

__all__ = [
    # Backfill
    "BackfillLoader",
    "BackfillResult",
    "candidate_heights",
    # Live polling
    "LiveSyncPoller",
    "PollOutcome",
    "PollResult",
    "PollerState",
    # Fetching
    "BlockSource",
    "BlockNotFoundError",
    "FetchBatch",
    "FetchError",
    "fetch_head",
    "fetch_heights",
    # Errors
    "BlockFetchFailed",
    "HeadUnavailableError",
    "SyncError",
    # Configuration constants
    "BACKFILL_COUNT",
    "MAX_CONCURRENT_FETCHES",
    "MAX_GAP_RETRIES",
    "MIN_VISIBLE_BLOCKS",
    "POLL_INTERVAL",
    "REQUEST_TIMEOUT",
]

from .backfill import BackfillLoader, BackfillResult, candidate_heights
from .config import (
    BACKFILL_COUNT,
    MAX_CONCURRENT_FETCHES,
    MAX_GAP_RETRIES,
    MIN_VISIBLE_BLOCKS,
    POLL_INTERVAL,
    REQUEST_TIMEOUT,
)
from .errors import BlockFetchFailed, HeadUnavailableError, SyncError
from .fetcher import FetchBatch, fetch_head, fetch_heights
from .live import LiveSyncPoller, PollOutcome, PollResult
from .source import BlockNotFoundError, BlockSource, FetchError
from .states import PollerState
