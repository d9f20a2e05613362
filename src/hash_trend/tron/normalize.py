"""
TronGrid block payload normalization.

TronGrid answers block queries with the node's native JSON::

    {
        "blockID": "0000000003f5b2c1e3f1...",
        "block_header": {
            "raw_data": {
                "number": 66433729,
                "timestamp": 1700000000000,
                ...
            },
            ...
        },
        ...
    }

Only the id, the number and the timestamp matter here.

Result Value
------------
The result value of a block is the last decimal digit in its id, scanning
from the end. Hex ids almost always contain one within the last few
characters. An id without any decimal digit cannot be classified and is
rejected as malformed.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from hash_trend.chain import BlockRecord
from hash_trend.sync.source import FetchError


class MalformedBlockError(FetchError):
    """The payload does not describe a block."""


def result_value_from_hash(block_hash: str) -> int:
    """
    Derive the result value of a block from its id.

    Raises:
        MalformedBlockError: If the id holds no decimal digit.
    """
    for char in reversed(block_hash):
        if char.isdigit():
            return int(char)
    raise MalformedBlockError(f"Block id has no decimal digit: {block_hash!r}")


def transform_tron_block(payload: dict[str, Any]) -> BlockRecord:
    """
    Normalize a TronGrid block payload into a classified record.

    Raises:
        MalformedBlockError: If required fields are missing or mistyped.
    """
    try:
        block_hash = payload["blockID"]
        raw_data = payload["block_header"]["raw_data"]
        height = raw_data["number"]
        timestamp_ms = raw_data["timestamp"]
    except (KeyError, TypeError) as exc:
        raise MalformedBlockError(f"Missing block field: {exc}") from exc

    if not isinstance(block_hash, str) or not isinstance(height, int) or isinstance(height, bool):
        raise MalformedBlockError(f"Mistyped block id or number in payload for {height!r}")
    if not isinstance(timestamp_ms, int | float):
        raise MalformedBlockError(f"Mistyped timestamp for block {height}")

    try:
        return BlockRecord.classified(
            height=height,
            hash=block_hash,
            result_value=result_value_from_hash(block_hash),
            timestamp=datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC),
        )
    except ValidationError as exc:
        raise MalformedBlockError(f"Invalid block {height}: {exc}") from exc
