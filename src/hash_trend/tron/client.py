"""
TronGrid HTTP client.

Implements the BlockSource capability over the TronGrid full-node API:

- POST /wallet/getnowblock        current chain head
- POST /wallet/getblockbynum      block at a height, body {"num": <height>}

Authentication uses the `TRON-PRO-API-KEY` header. Every failure mode
(transport errors, timeouts, non-2xx statuses, malformed payloads) becomes a
FetchError, so the sync layer can treat them all alike.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import httpx
from typing_extensions import Self

from hash_trend.chain import BlockRecord
from hash_trend.sync.config import REQUEST_TIMEOUT
from hash_trend.sync.source import BlockNotFoundError, FetchError

from .normalize import transform_tron_block

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.trongrid.io"
"""Public TronGrid mainnet endpoint."""

API_KEY_HEADER = "TRON-PRO-API-KEY"
"""Header carrying the TronGrid credential."""

HEAD_ENDPOINT = "/wallet/getnowblock"
"""Endpoint returning the current chain head."""

BLOCK_BY_NUM_ENDPOINT = "/wallet/getblockbynum"
"""Endpoint returning the block at a height."""


@dataclass(slots=True)
class TronGridClient:
    """
    BlockSource backed by TronGrid.

    The underlying connection pool is created lazily and reused across
    requests. Close it with `aclose()` or by using the client as an async
    context manager.
    """

    api_key: str
    """TronGrid credential."""

    base_url: str = DEFAULT_API_URL
    """API root, without trailing slash."""

    timeout: float = REQUEST_TIMEOUT
    """Per-request timeout in seconds."""

    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)
    """Custom transport (tests inject httpx.MockTransport)."""

    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)
    """Shared connection pool."""

    def _http(self) -> httpx.AsyncClient:
        """Return the shared client, creating it on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url.rstrip("/"),
                headers={API_KEY_HEADER: self.api_key, "Accept": "application/json"},
                timeout=self.timeout,
                transport=self.transport,
            )
        return self._client

    async def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        POST a JSON body and decode the JSON answer.

        Raises:
            FetchError: On transport, status or decoding failures.
        """
        try:
            response = await self._http().post(endpoint, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timed out requesting {endpoint}") from exc
        except httpx.RequestError as exc:
            raise FetchError(f"Network error while connecting to {exc.request.url}: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"HTTP error {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except ValueError as exc:
            raise FetchError(f"Invalid JSON from {endpoint}: {exc}") from exc

        if not isinstance(payload, dict):
            raise FetchError(f"Unexpected payload from {endpoint}: {type(payload).__name__}")
        if "Error" in payload:
            raise FetchError(f"TronGrid error from {endpoint}: {payload['Error']}")
        return payload

    async def get_head(self) -> BlockRecord:
        """Fetch the current chain head."""
        payload = await self._post(HEAD_ENDPOINT, {})
        return transform_tron_block(payload)

    async def get_block(self, height: int) -> BlockRecord:
        """Fetch the block at an exact height."""
        payload = await self._post(BLOCK_BY_NUM_ENDPOINT, {"num": height})

        # Nodes answer an unknown height with an empty object.
        if not payload:
            raise BlockNotFoundError(height)
        return transform_tron_block(payload)

    async def aclose(self) -> None:
        """Release the connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        """Enter the async context."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the connection pool on exit."""
        await self.aclose()
