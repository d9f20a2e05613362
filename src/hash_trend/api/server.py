"""
API server exposing a sync session to external renderers.

Provides HTTP endpoints for:
- /api/v0/health - Health check endpoint
- /api/v0/status - Session summary (store size, flags, last error)
- /api/v0/credential - Replace the API key (resets the session)
- /api/v0/rules - List, upsert, delete and activate sampling rules
- /api/v0/blocks - Sampled view, newest first
- /api/v0/grid - Bead plate of the sampled view plus legend counts
- /api/v0/backfill - Manual backfill (the retry action)
- /metrics - Prometheus metrics endpoint

All JSON bodies use camelCase keys.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from aiohttp import web

from hash_trend.chain import ClassificationAxis
from hash_trend.grid import DEFAULT_ROWS
from hash_trend.metrics import generate_metrics
from hash_trend.sampling import InvalidRuleError, SamplingRule, parse_rule
from hash_trend.sync import HeadUnavailableError

if TYPE_CHECKING:
    from hash_trend.session import SyncSession

logger = logging.getLogger(__name__)

MAX_GRID_ROWS = 64
"""Largest plate height accepted from clients."""


async def _handle_health(_request: web.Request) -> web.Response:
    """Handle health check endpoint."""
    return web.json_response({"status": "healthy", "service": "hash-trend-api"})


async def _handle_metrics(_request: web.Request) -> web.Response:
    """Handle Prometheus metrics endpoint."""
    return web.Response(
        body=generate_metrics(),
        content_type="text/plain; version=0.0.4",
        charset="utf-8",
    )


@dataclass(frozen=True, slots=True)
class ApiServerConfig:
    """Configuration for the API server."""

    host: str = "127.0.0.1"
    """Host address to bind to."""

    port: int = 8080
    """Port to listen on."""

    enabled: bool = True
    """Whether the API server is enabled."""


@dataclass(slots=True)
class ApiServer:
    """
    HTTP API over a SyncSession.

    Uses aiohttp to handle HTTP protocol details efficiently.
    """

    config: ApiServerConfig
    """Server configuration."""

    session: SyncSession
    """Session whose views and operations are exposed."""

    _runner: web.AppRunner | None = field(default=None, init=False)
    """The aiohttp application runner."""

    _site: web.TCPSite | None = field(default=None, init=False)
    """The TCP site for the server."""

    def build_app(self) -> web.Application:
        """Create the aiohttp application with every route registered."""
        app = web.Application()
        app.add_routes(
            [
                web.get("/api/v0/health", _handle_health),
                web.get("/metrics", _handle_metrics),
                web.get("/api/v0/status", self._handle_status),
                web.put("/api/v0/credential", self._handle_set_credential),
                web.get("/api/v0/rules", self._handle_list_rules),
                web.post("/api/v0/rules", self._handle_upsert_rule),
                web.delete("/api/v0/rules/{rule_id}", self._handle_delete_rule),
                web.post("/api/v0/rules/{rule_id}/activate", self._handle_activate_rule),
                web.get("/api/v0/blocks", self._handle_blocks),
                web.get("/api/v0/grid", self._handle_grid),
                web.post("/api/v0/backfill", self._handle_backfill),
            ]
        )
        return app

    async def start(self) -> None:
        """Start the API server in the background."""
        if not self.config.enabled:
            logger.info("API server is disabled")
            return

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()

        logger.info("API server listening on %s:%d", self.config.host, self.config.port)

    async def run(self) -> None:
        """
        Run the API server until shutdown.

        This method blocks until stop() is called.
        """
        await self.start()

        while self._runner is not None:
            await asyncio.sleep(1)

    def stop(self) -> None:
        """Request graceful shutdown."""
        if self._runner is not None:
            asyncio.create_task(self._async_stop())

    async def _async_stop(self) -> None:
        """Gracefully stop the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            logger.info("API server stopped")

    # -------------------------------------------------------------------------
    # Request helpers
    # -------------------------------------------------------------------------

    async def _json_object(self, request: web.Request) -> dict[str, Any]:
        """Parse a request body that must be a JSON object."""
        try:
            body: Any = await request.json()
        except ValueError as exc:
            raise web.HTTPBadRequest(text="Body must be JSON") from exc
        if not isinstance(body, dict):
            raise web.HTTPBadRequest(text="Body must be a JSON object")
        return body

    def _rule_from_query(self, request: web.Request) -> SamplingRule:
        """Resolve the `rule` query parameter, defaulting to the active rule."""
        rule_id = request.query.get("rule")
        if rule_id is None:
            return self.session.rules.active
        try:
            return self.session.rules.get(rule_id)
        except InvalidRuleError as exc:
            raise web.HTTPNotFound(text=str(exc)) from exc

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _handle_status(self, _request: web.Request) -> web.Response:
        """Return the session summary."""
        return web.json_response(self.session.status().to_json_dict())

    async def _handle_set_credential(self, request: web.Request) -> web.Response:
        """
        Replace the API key.

        A changed key clears the store and reloads the active rule's window
        before responding. The key itself is never echoed back.

        Request format: {"apiKey": "<key>"}
        """
        body = await self._json_object(request)
        api_key = body.get("apiKey")
        if not isinstance(api_key, str):
            raise web.HTTPBadRequest(text="apiKey must be a string")

        try:
            changed = await self.session.set_credential(api_key)
        except ValueError as exc:
            raise web.HTTPBadRequest(text=str(exc)) from exc

        return web.json_response(
            {"changed": changed, "status": self.session.status().to_json_dict()}
        )

    async def _handle_list_rules(self, _request: web.Request) -> web.Response:
        """
        List every rule and the active rule id.

        Response format:
        {
            "active": "<rule_id>",
            "rules": [{"id": ..., "label": ..., "stride": ..., "anchorHeight": ...}]
        }
        """
        rules = self.session.rules
        return web.json_response(
            {
                "active": rules.active.id,
                "rules": [rule.to_json_dict() for rule in rules],
            }
        )

    async def _handle_upsert_rule(self, request: web.Request) -> web.Response:
        """Add a rule, or replace the rule with the same id."""
        body = await self._json_object(request)
        try:
            rule = parse_rule(body)
        except InvalidRuleError as exc:
            raise web.HTTPBadRequest(text=str(exc)) from exc

        self.session.rules.upsert(rule)
        return web.json_response(rule.to_json_dict())

    async def _handle_delete_rule(self, request: web.Request) -> web.Response:
        """Delete a rule. The last remaining rule cannot be deleted."""
        rule_id = request.match_info["rule_id"]
        if rule_id not in self.session.rules:
            raise web.HTTPNotFound(text=f"Unknown rule id: {rule_id!r}")
        try:
            self.session.rules.delete(rule_id)
        except InvalidRuleError as exc:
            raise web.HTTPConflict(text=str(exc)) from exc
        return web.json_response({"active": self.session.rules.active.id})

    async def _handle_activate_rule(self, request: web.Request) -> web.Response:
        """Switch the active rule, backfilling if its view is thin."""
        rule_id = request.match_info["rule_id"]
        try:
            rule = await self.session.activate_rule(rule_id)
        except InvalidRuleError as exc:
            raise web.HTTPNotFound(text=str(exc)) from exc
        return web.json_response(rule.to_json_dict())

    async def _handle_blocks(self, request: web.Request) -> web.Response:
        """Return the sampled view, newest first, optionally text-filtered."""
        rule = self._rule_from_query(request)
        blocks = self.session.sampled_view(rule, request.query.get("q"))
        return web.json_response(
            {
                "rule": rule.id,
                "count": len(blocks),
                "blocks": [block.to_json_dict() for block in blocks],
            }
        )

    async def _handle_grid(self, request: web.Request) -> web.Response:
        """Return the bead plate of the sampled view."""
        rule = self._rule_from_query(request)

        try:
            axis = ClassificationAxis(request.query.get("axis", ClassificationAxis.PARITY.value))
        except ValueError as exc:
            raise web.HTTPBadRequest(text="axis must be 'parity' or 'size'") from exc

        try:
            rows = int(request.query.get("rows", DEFAULT_ROWS))
        except ValueError as exc:
            raise web.HTTPBadRequest(text="rows must be an integer") from exc
        if not 0 < rows <= MAX_GRID_ROWS:
            raise web.HTTPBadRequest(text=f"rows must be between 1 and {MAX_GRID_ROWS}")

        view = self.session.grid(axis, rows, rule)
        return web.json_response({"rule": rule.id, **view.to_json_dict()})

    async def _handle_backfill(self, request: web.Request) -> web.Response:
        """Run a backfill now. Used as the manual retry action."""
        rule = self._rule_from_query(request)
        if not self.session.has_credential:
            raise web.HTTPConflict(text="No API key configured")

        try:
            result = await self.session.backfill(rule)
        except HeadUnavailableError as exc:
            raise web.HTTPServiceUnavailable(text=str(exc)) from exc

        return web.json_response(
            {
                "rule": result.rule_id,
                "headHeight": result.head_height,
                "requested": list(result.requested),
                "fetched": result.fetched,
                "added": result.added,
                "skipped": result.skipped_heights,
            }
        )
