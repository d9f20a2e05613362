"""Builders for block records and TronGrid payloads used across tests."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from hash_trend.chain import BlockRecord

GENESIS_TIME = datetime(2024, 1, 1, tzinfo=UTC)
"""Timestamp of height 0 in generated records."""

BLOCK_TIME = timedelta(seconds=3)
"""Spacing between generated records."""


def make_hash(height: int, result_value: int) -> str:
    """Build a hex block id whose last decimal digit is `result_value`."""
    return f"{height:016x}{'ab' * 23}{result_value}"


def make_block(height: int, result_value: int | None = None) -> BlockRecord:
    """
    Build a classified record for a height.

    The result value defaults to the last digit of the height, so parity of
    the result follows parity of the height.
    """
    value = height % 10 if result_value is None else result_value
    return BlockRecord.classified(
        height=height,
        hash=make_hash(height, value),
        result_value=value,
        timestamp=GENESIS_TIME + height * BLOCK_TIME,
    )


def make_blocks(heights: Iterable[int]) -> list[BlockRecord]:
    """Build one record per height, in the given order."""
    return [make_block(height) for height in heights]


def make_tron_payload(
    height: int,
    block_id: str | None = None,
    timestamp_ms: int = 1_700_000_000_000,
) -> dict[str, Any]:
    """Build a TronGrid block payload as returned by the full-node API."""
    return {
        "blockID": block_id if block_id is not None else make_hash(height, height % 10),
        "block_header": {
            "raw_data": {
                "number": height,
                "txTrieRoot": "0" * 64,
                "witness_address": "41" + "0" * 40,
                "parentHash": "0" * 64,
                "version": 30,
                "timestamp": timestamp_ms,
            },
            "witness_signature": "00",
        },
    }
