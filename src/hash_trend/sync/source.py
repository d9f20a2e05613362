"""
The block source capability the sync components consume.

Sync never talks to a chain API directly. It needs two questions answered:
what is the chain head, and what is the block at a given height. Anything
that answers them satisfies BlockSource: the TronGrid HTTP client in
production, an in-memory fake in tests.
"""

from __future__ import annotations

from typing import Protocol

from hash_trend.chain import BlockRecord


class FetchError(Exception):
    """
    A block or head could not be fetched.

    Covers transport failures, timeouts, authentication errors, and payloads
    that could not be normalized into a BlockRecord.
    """


class BlockNotFoundError(FetchError):
    """The source has no block at the requested height."""

    def __init__(self, height: int) -> None:
        """Record the missing height."""
        super().__init__(f"Block {height} not found")
        self.height = height


class BlockSource(Protocol):
    """
    Protocol for chain block access.

    Implementers should:
    - Enforce request timeouts internally
    - Raise FetchError (or a subclass) on any failure
    - Return fully classified records
    """

    async def get_head(self) -> BlockRecord:
        """
        Fetch the current chain head.

        Raises:
            FetchError: If the head cannot be fetched.
        """
        ...

    async def get_block(self, height: int) -> BlockRecord:
        """
        Fetch the block at an exact height.

        Raises:
            BlockNotFoundError: If the source has no block at this height.
            FetchError: On any other failure.
        """
        ...
