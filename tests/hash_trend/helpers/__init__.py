"""Test helpers for hash-trend unit tests."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TypeVar

from .builders import make_block, make_blocks, make_hash, make_tron_payload
from .mocks import MockBlockSource, MockSourceFactory, WrongHeightSource

_T = TypeVar("_T")


def run_async(coro: Coroutine[object, object, _T]) -> _T:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


__all__ = [
    "MockBlockSource",
    "MockSourceFactory",
    "WrongHeightSource",
    "make_block",
    "make_blocks",
    "make_hash",
    "make_tron_payload",
    "run_async",
]
