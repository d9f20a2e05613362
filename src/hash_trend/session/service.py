"""
Sync session orchestrator.

A session is everything tied to one credential: the block store, the rule
book, the backfill loader, the live poller and the last error. It is an
explicit object rather than process-wide state, so tests and embedders can
run several side by side.

Lifecycle
---------
::

    no credential --set_credential--> polling --set_credential(other)--> polling
                                         |                                  ^
                                         +---- store cleared, retries ------+
                                               forgotten, error reset

- Without a credential nothing is fetched: poll ticks are skipped and
  backfills are refused.
- A new credential resets the session: the old source is closed, the store
  is cleared and the next tick or backfill repopulates it.

Error Surface
-------------
Failed backfills and polls set `last_error`, shown next to a manual retry
action. They never clear previously synced data. The next operation that
reaches the chain head clears the error again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from hash_trend.chain import BlockRecord, ClassificationAxis
from hash_trend.config import SessionConfig
from hash_trend.grid import DEFAULT_ROWS
from hash_trend.sampling import RuleBook, SamplingRule, sampled_view
from hash_trend.store import BlockStore
from hash_trend.sync import (
    BackfillLoader,
    BackfillResult,
    BlockSource,
    HeadUnavailableError,
    LiveSyncPoller,
    PollResult,
    SyncError,
)
from hash_trend.tron import TronGridClient
from hash_trend.types import StrictBaseModel

from .views import GridView, build_grid_view, search_blocks

logger = logging.getLogger(__name__)

SourceFactory = Callable[[str], BlockSource]
"""Builds a block source for a credential."""


class NoCredentialError(SyncError):
    """An operation needs chain access but no credential is configured."""


class SessionStatus(StrictBaseModel):
    """Point-in-time summary of a session, for monitoring and the API."""

    has_credential: bool
    active_rule: str
    store_size: int
    capacity: int
    max_height: int
    min_height: int
    is_loading: bool
    is_syncing: bool
    pending_retries: int
    last_error: str | None = None


class _NoSource:
    """Source of a session without a credential. Never reached by polls."""

    async def get_head(self) -> BlockRecord:
        """Always fails: there is no credential."""
        raise NoCredentialError("No API key configured")

    async def get_block(self, height: int) -> BlockRecord:
        """Always fails: there is no credential."""
        raise NoCredentialError("No API key configured")


def _always_visible() -> bool:
    """Default visibility check: the consumer is always watching."""
    return True


@dataclass(slots=True)
class SyncSession:
    """
    Owns the store and drives both sync components for one credential.

    The poller and the loader are created once and follow credential
    changes by swapping their source, so a running timer loop survives them.
    """

    config: SessionConfig
    """Session settings."""

    source_factory: SourceFactory | None = None
    """Builds the block source for a credential. Defaults to TronGrid."""

    is_visible: Callable[[], bool] = _always_visible
    """Whether the consumer surface is observable. Polls pause while it is not."""

    store: BlockStore = field(init=False)
    """Blocks fetched for the current credential."""

    rules: RuleBook = field(init=False)
    """User-managed sampling rules."""

    last_error: str | None = field(default=None, init=False)
    """Message of the last failed backfill or poll, None after a success."""

    _api_key: str = field(default="", init=False, repr=False)
    """Current credential, empty when none is configured."""

    _source: BlockSource = field(default_factory=_NoSource, init=False, repr=False)
    """Source built for the current credential."""

    _loader: BackfillLoader = field(init=False, repr=False)
    """Backfill loader, follows the current source."""

    _poller: LiveSyncPoller = field(init=False, repr=False)
    """Live poller, follows the current source."""

    _backfills_in_flight: int = field(default=0, init=False, repr=False)
    """Backfills currently running."""

    def __post_init__(self) -> None:
        """Build the store, the rule book and both sync components."""
        self.store = BlockStore(capacity=self.config.capacity)
        self.rules = RuleBook.from_rules(self.config.rules)
        if self.config.active_rule is not None:
            self.rules.activate(self.config.active_rule)

        if self.source_factory is None:
            self.source_factory = self._tron_source

        self._loader = BackfillLoader(
            source=self._source,
            store=self.store,
            max_concurrent=self.config.max_concurrent_fetches,
        )
        self._poller = LiveSyncPoller(
            source=self._source,
            store=self.store,
            is_visible=self._should_poll,
            max_concurrent=self.config.max_concurrent_fetches,
            max_gap_retries=self.config.max_gap_retries,
        )

        if self.config.api_key:
            self._bind(self.config.api_key)

    def _tron_source(self, api_key: str) -> BlockSource:
        """Default source factory: TronGrid with the configured endpoint."""
        return TronGridClient(
            api_key=api_key,
            base_url=self.config.api_url,
            timeout=self.config.request_timeout,
        )

    def _bind(self, api_key: str) -> None:
        """Point both sync components at a source for this credential."""
        assert self.source_factory is not None
        self._api_key = api_key
        self._source = self.source_factory(api_key)
        self._loader.source = self._source
        self._poller.source = self._source
        self._poller.reset()

    def _should_poll(self) -> bool:
        """Poll only with a credential and an observable consumer."""
        return self.has_credential and self.is_visible()

    # -------------------------------------------------------------------------
    # Credential
    # -------------------------------------------------------------------------

    @property
    def has_credential(self) -> bool:
        """Check if a credential is configured."""
        return bool(self._api_key)

    async def set_credential(self, api_key: str) -> bool:
        """
        Switch to a new credential.

        A changed credential closes the old source, clears the store and the
        last error, then backfills the active rule. Setting the current
        credential again changes nothing.

        Returns:
            True if the session was reset.

        Raises:
            ValueError: If the key is blank.
        """
        api_key = api_key.strip()
        if not api_key:
            raise ValueError("API key must not be blank")
        if api_key == self._api_key:
            return False

        await self._close_source()
        self.store.clear()
        self.last_error = None
        self._bind(api_key)

        logger.info("Credential changed, store cleared")
        await self.ensure_backfill()
        return True

    async def _close_source(self) -> None:
        """Close the current source if it holds resources."""
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def sampled_view(
        self,
        rule: SamplingRule | None = None,
        query: str | None = None,
    ) -> list[BlockRecord]:
        """
        Held blocks aligned to a rule, newest first.

        Args:
            rule: Rule to sample with. Defaults to the active rule.
            query: Optional text filter on height or hash.
        """
        blocks = sampled_view(self.store.snapshot(), rule or self.rules.active)
        if query:
            blocks = search_blocks(blocks, query)
        return blocks

    def grid(
        self,
        axis: ClassificationAxis,
        rows: int = DEFAULT_ROWS,
        rule: SamplingRule | None = None,
    ) -> GridView:
        """
        Bead plate of the sampled view.

        Raises:
            ValueError: If `rows` is not positive.
        """
        return build_grid_view(self.sampled_view(rule), axis, rows)

    # -------------------------------------------------------------------------
    # Sync operations
    # -------------------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        """Check if a backfill is running."""
        return self._backfills_in_flight > 0

    @property
    def is_syncing(self) -> bool:
        """Check if a poll tick is in flight."""
        return self._poller.state.is_busy

    async def backfill(self, rule: SamplingRule | None = None) -> BackfillResult:
        """
        Load a historical window aligned to a rule (the active one by default).

        Raises:
            NoCredentialError: If no credential is configured.
            HeadUnavailableError: If the chain head could not be fetched.
                `last_error` is set and the store keeps its contents.
        """
        if not self.has_credential:
            raise NoCredentialError("Configure an API key before loading blocks")

        rule = rule or self.rules.active
        self._backfills_in_flight += 1
        try:
            result = await self._loader.backfill(rule, self.config.backfill_count)
        except HeadUnavailableError as exc:
            logger.warning("Backfill for rule %s failed: %s", rule.id, exc)
            self._record_error(exc)
            raise
        finally:
            self._backfills_in_flight -= 1

        self.last_error = None
        return result

    async def ensure_backfill(self, rule: SamplingRule | None = None) -> BackfillResult | None:
        """
        Backfill if the sampled view is too thin to be useful.

        Skips when there is no credential, a backfill is already running, or
        the view already holds `min_visible` blocks. Head failures are
        recorded in `last_error` rather than raised.
        """
        rule = rule or self.rules.active
        if not self.has_credential or self.is_loading:
            return None
        if len(self.sampled_view(rule)) >= self.config.min_visible:
            return None

        try:
            return await self.backfill(rule)
        except HeadUnavailableError:
            return None

    async def activate_rule(self, rule_id: str) -> SamplingRule:
        """
        Switch the active rule, backfilling if its view is too thin.

        Raises:
            InvalidRuleError: If no rule has this id.
        """
        rule = self.rules.activate(rule_id)
        await self.ensure_backfill(rule)
        return rule

    async def poll_once(self) -> PollResult:
        """
        Run one live poll tick now.

        Raises:
            HeadUnavailableError: If the chain head could not be fetched.
                `last_error` is set and the store keeps its contents.
        """
        try:
            result = await self._poller.tick()
        except HeadUnavailableError as exc:
            logger.warning("Poll failed: %s", exc)
            self._record_error(exc)
            raise

        self._record_success(result)
        return result

    def _record_error(self, exc: SyncError) -> None:
        """Remember a failure for display."""
        self.last_error = str(exc)

    def _record_success(self, result: PollResult) -> None:
        """Clear the last error once a tick has reached the chain head."""
        if result.head_height is not None:
            self.last_error = None

    async def run(self) -> None:
        """
        Backfill the active rule if needed, then poll until stopped.

        Ticks are skipped while there is no credential or no observer, so the
        loop can run for the whole process lifetime.
        """
        await self.ensure_backfill()
        await self._poller.run(
            self.config.poll_interval,
            on_error=self._record_error,
            on_success=self._record_success,
        )

    def stop(self) -> None:
        """Stop the poll loop after its current tick or sleep."""
        self._poller.stop()

    async def close(self) -> None:
        """Stop polling and release the source."""
        self.stop()
        await self._close_source()

    def status(self) -> SessionStatus:
        """Summarize the session."""
        return SessionStatus(
            has_credential=self.has_credential,
            active_rule=self.rules.active.id,
            store_size=len(self.store),
            capacity=self.store.capacity,
            max_height=self.store.max_height(),
            min_height=self.store.min_height(),
            is_loading=self.is_loading,
            is_syncing=self.is_syncing,
            pending_retries=len(self._poller.pending_retries),
            last_error=self.last_error,
        )
