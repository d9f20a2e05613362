"""
Sync error kinds.

Only one failure ever leaves a sync operation: the chain head could not be
fetched. Without a head there is nothing to align to and no gap to fill, so
the operation stops before touching the store.

Failures for individual heights are not exceptions at this level. They are
recorded as BlockFetchFailed values next to the successes, and the batch
carries on. Chain data for a height can be fetched again later, so partial
data now beats no data.
"""

from __future__ import annotations

from dataclasses import dataclass


class SyncError(Exception):
    """Base class for errors surfaced by sync operations."""


class HeadUnavailableError(SyncError):
    """
    The chain head could not be fetched.

    Retryable. The store is left exactly as it was.
    """


@dataclass(frozen=True, slots=True)
class BlockFetchFailed:
    """A height that could not be fetched and was skipped."""

    height: int
    """The skipped height."""

    reason: str
    """Short description of the underlying failure."""
