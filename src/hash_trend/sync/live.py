"""
Live sync: keep the store current with newly produced blocks.

The Problem
-----------
The chain produces a block every few seconds. The store should follow the
head without ever re-fetching history it already holds.

How It Works
------------
A timer fires every `POLL_INTERVAL` seconds. Each firing runs one tick:

1. Skip if the consumer is not looking (hidden or backgrounded)
2. Skip if the previous tick is still in flight (never queued)
3. Fetch the chain head; if that fails, give up on this tick
4. Compare the head to the newest held height
5. Fetch the gap (newest held, head] in ascending order, plus earlier gap
   heights that failed and are due for a retry
6. Merge everything fetched into the store

Missing Heights
---------------
The newest held height says nothing about holes below it. If height 501
fails while 502 and 503 succeed, the newest held height is 503 and a gap
computed from it would never include 501 again.

The poller therefore remembers failed gap heights and retries them on later
ticks, up to MAX_GAP_RETRIES times each. A height is forgotten once it is
fetched, once it falls below the window a full store can retain, or once its
retries run out. Abandoned heights are logged.

Gap Bounding
------------
A store holds at most `capacity` blocks, all of them the highest ones. When
the gap is wider than that (an empty store facing a chain millions of blocks
tall), only the top `capacity` heights of the gap are fetched.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from hash_trend import metrics
from hash_trend.store import BlockStore

from .config import MAX_CONCURRENT_FETCHES, MAX_GAP_RETRIES, POLL_INTERVAL
from .errors import BlockFetchFailed, SyncError
from .fetcher import FetchBatch, fetch_head, fetch_heights
from .source import BlockSource
from .states import PollerState

logger = logging.getLogger(__name__)


def _always_visible() -> bool:
    """Default visibility check: the consumer is always watching."""
    return True


class PollOutcome(str, Enum):
    """How a tick ended."""

    HIDDEN = "hidden"
    """Consumer not observable. Nothing fetched."""

    BUSY = "busy"
    """Previous tick still in flight. Nothing fetched."""

    UP_TO_DATE = "up_to_date"
    """Head not above the newest held block and no retries due."""

    SYNCED = "synced"
    """Gap or retry heights were fetched and merged."""

    FAILED = "failed"
    """Head fetch failed. Only used for metrics; the tick raises."""


@dataclass(frozen=True, slots=True)
class PollResult:
    """What a tick did."""

    outcome: PollOutcome
    """How the tick ended."""

    head_height: int | None = None
    """Chain head observed, if the tick got that far."""

    requested: tuple[int, ...] = ()
    """Heights fetched this tick, ascending."""

    fetched: int = 0
    """Number of requested heights fetched successfully."""

    added: int = 0
    """Number of heights newly held by the store after the merge."""

    failures: tuple[BlockFetchFailed, ...] = ()
    """Requested heights that could not be fetched."""


@dataclass(slots=True)
class LiveSyncPoller:
    """
    Follows the chain head by polling.

    The poller does not own the store. It only ever calls `merge()`, so
    backfills may run concurrently.
    """

    source: BlockSource
    """Where blocks come from."""

    store: BlockStore
    """Where fetched blocks go."""

    is_visible: Callable[[], bool] = _always_visible
    """Whether anyone is watching. Ticks are skipped while this is False."""

    max_concurrent: int = MAX_CONCURRENT_FETCHES
    """Upper bound on fetches in flight."""

    max_gap_retries: int = MAX_GAP_RETRIES
    """Retries per failed gap height before it is abandoned."""

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    """Held while a tick is in flight."""

    _state: PollerState = field(default=PollerState.IDLE, repr=False)
    """Current state machine state."""

    _failed_attempts: dict[int, int] = field(default_factory=dict, repr=False)
    """Failed gap heights mapped to how many fetches of them have failed."""

    _running: bool = field(default=False, repr=False)
    """Whether the timer loop is running."""

    @property
    def state(self) -> PollerState:
        """Current state machine state."""
        return self._state

    @property
    def pending_retries(self) -> list[int]:
        """Failed gap heights that will be retried, ascending."""
        return sorted(self._failed_attempts)

    async def tick(self) -> PollResult:
        """
        Run one poll.

        Returns:
            What the tick did. Skipped ticks return HIDDEN or BUSY.

        Raises:
            HeadUnavailableError: If the chain head could not be fetched.
                The store is untouched and the next tick may proceed.
        """
        if not self.is_visible():
            metrics.poll_ticks.labels(outcome=PollOutcome.HIDDEN.value).inc()
            return PollResult(outcome=PollOutcome.HIDDEN)

        if self._lock.locked():
            logger.debug("Poll tick skipped: previous tick still running")
            metrics.poll_ticks.labels(outcome=PollOutcome.BUSY.value).inc()
            return PollResult(outcome=PollOutcome.BUSY)

        async with self._lock:
            self._transition(PollerState.RUNNING)
            try:
                with metrics.poll_duration.time():
                    result = await self._sync()
            except SyncError:
                metrics.poll_ticks.labels(outcome=PollOutcome.FAILED.value).inc()
                raise
            finally:
                self._transition(PollerState.IDLE)

        metrics.poll_ticks.labels(outcome=result.outcome.value).inc()
        return result

    async def _sync(self) -> PollResult:
        """Fetch the head, then the gap and due retries, and merge."""
        head = await fetch_head(self.source)
        top = self.store.max_height()

        retries = self._due_retries()
        gap = self._gap_heights(top, head.height)

        if not gap and not retries:
            return PollResult(outcome=PollOutcome.UP_TO_DATE, head_height=head.height)

        heights = sorted(set(retries) | set(gap))
        logger.debug(
            "Poll: head=%d top=%d gap=%d retries=%d",
            head.height,
            top,
            len(gap),
            len(retries),
        )

        batch = await fetch_heights(self.source, heights, self.max_concurrent)
        added = self.store.merge(batch.blocks)
        self._track_failures(batch)

        if added:
            logger.info("Synced %d new blocks up to head %d", added, head.height)

        return PollResult(
            outcome=PollOutcome.SYNCED,
            head_height=head.height,
            requested=tuple(heights),
            fetched=len(batch.blocks),
            added=added,
            failures=tuple(batch.failures),
        )

    def _gap_heights(self, top: int, head_height: int) -> list[int]:
        """Heights in (top, head_height], limited to what the store can retain."""
        if head_height <= top:
            return []
        start = max(top + 1, head_height - self.store.capacity + 1)
        return list(range(start, head_height + 1))

    def _due_retries(self) -> list[int]:
        """Failed heights still worth fetching. Drops those a full store cannot retain."""
        if self.store.is_full:
            floor = self.store.min_height()
            for height in [h for h in self._failed_attempts if h < floor]:
                logger.debug("Dropping retry for block %d: below retained window", height)
                del self._failed_attempts[height]
        return sorted(self._failed_attempts)

    def _track_failures(self, batch: FetchBatch) -> None:
        """Forget fetched heights and count another failure for skipped ones."""
        for block in batch.blocks:
            self._failed_attempts.pop(block.height, None)

        for failure in batch.failures:
            attempts = self._failed_attempts.get(failure.height, 0) + 1
            if attempts > self.max_gap_retries:
                logger.warning(
                    "Abandoning block %d after %d failed fetches: %s",
                    failure.height,
                    attempts,
                    failure.reason,
                )
                del self._failed_attempts[failure.height]
            else:
                self._failed_attempts[failure.height] = attempts

    def _transition(self, target: PollerState) -> None:
        """Move the state machine, rejecting invalid transitions."""
        if not self._state.can_transition_to(target):
            raise RuntimeError(f"Invalid poller transition {self._state.name} -> {target.name}")
        self._state = target

    async def run(
        self,
        period: float = POLL_INTERVAL,
        on_error: Callable[[SyncError], None] | None = None,
        on_success: Callable[[PollResult], None] | None = None,
    ) -> None:
        """
        Tick every `period` seconds until stopped.

        A slow tick delays the next one instead of overlapping it. A failed
        tick is logged and reported to `on_error`; the loop keeps going.
        Completed ticks are reported to `on_success`.
        """
        self._running = True

        while self._running:
            try:
                result = await self.tick()
            except SyncError as exc:
                logger.warning("Poll tick failed: %s", exc)
                if on_error is not None:
                    on_error(exc)
            else:
                if on_success is not None:
                    on_success(result)

            if not self._running:
                break
            await asyncio.sleep(period)

    def stop(self) -> None:
        """
        Stop the timer loop.

        The loop exits after its current tick or sleep.
        """
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the timer loop is running."""
        return self._running

    def reset(self) -> None:
        """Forget every pending retry."""
        self._failed_attempts.clear()
