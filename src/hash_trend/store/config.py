"""Block store configuration constants."""

from __future__ import annotations

from typing import Final

DEFAULT_CAPACITY: Final[int] = 2000
"""Maximum blocks held by a store unless configured otherwise."""
