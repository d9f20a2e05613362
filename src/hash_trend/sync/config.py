"""
Sync configuration constants.

Operational parameters for synchronization: batch sizes, timeouts, and limits.
"""

from __future__ import annotations

from typing import Final

POLL_INTERVAL: Final[float] = 3.0
"""Seconds between live poll ticks."""

BACKFILL_COUNT: Final[int] = 30
"""Aligned heights requested by one backfill run."""

MIN_VISIBLE_BLOCKS: Final[int] = 15
"""Sampled view size below which a backfill is triggered."""

MAX_CONCURRENT_FETCHES: Final[int] = 4
"""Maximum block fetches in flight within one batch."""

REQUEST_TIMEOUT: Final[float] = 10.0
"""Timeout for individual block requests in seconds."""

MAX_GAP_RETRIES: Final[int] = 5
"""Poll ticks a failed gap height is retried on before it is abandoned."""
