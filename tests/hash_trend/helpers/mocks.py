"""
Mock block sources for testing the sync layer.

Each mock serves blocks from memory and records what was asked of it.
"""

from __future__ import annotations

import asyncio

from hash_trend.chain import BlockRecord
from hash_trend.sync import BlockNotFoundError, FetchError

from .builders import make_block


class MockBlockSource:
    """
    In-memory chain that produces a block at every height up to the head.

    Failures are configured per height. A gate can hold head requests open
    to simulate a slow tick.
    """

    def __init__(self, head_height: int = 0) -> None:
        """Initialize with a chain of the given height."""
        self.head_height = head_height
        self.failing: set[int] = set()
        self.head_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.head_calls = 0
        self.requests: list[int] = []
        self.closed = False

    async def get_head(self) -> BlockRecord:
        """Return the block at the head height."""
        self.head_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.head_error is not None:
            raise self.head_error
        return make_block(self.head_height)

    async def get_block(self, height: int) -> BlockRecord:
        """Return the block at a height, failing where configured."""
        self.requests.append(height)
        if height in self.failing:
            raise FetchError(f"Timed out fetching block {height}")
        if height > self.head_height:
            raise BlockNotFoundError(height)
        return make_block(height)

    async def aclose(self) -> None:
        """Record that the source was released."""
        self.closed = True


class WrongHeightSource(MockBlockSource):
    """Source that answers every block request with the head block."""

    async def get_block(self, height: int) -> BlockRecord:
        """Return the head block regardless of the requested height."""
        self.requests.append(height)
        return make_block(self.head_height)


class MockSourceFactory:
    """Builds one MockBlockSource per credential and keeps them for inspection."""

    def __init__(self, head_height: int = 0) -> None:
        """Initialize with the head height every new source starts at."""
        self.head_height = head_height
        self.sources: dict[str, MockBlockSource] = {}

    def __call__(self, api_key: str) -> MockBlockSource:
        """Build the source for a credential."""
        source = MockBlockSource(self.head_height)
        self.sources[api_key] = source
        return source
