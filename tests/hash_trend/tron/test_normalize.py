"""Tests for TronGrid payload normalization."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from hash_trend.chain import BlockType, SizeType
from hash_trend.sync import FetchError
from hash_trend.tron import MalformedBlockError, result_value_from_hash, transform_tron_block
from tests.hash_trend.helpers import make_tron_payload


class TestResultValue:
    """Tests for deriving the result value from a block id."""

    @pytest.mark.parametrize(
        ("block_id", "expected"),
        [
            ("0000000003f5b2c1e3f1ab7c", 7),
            ("00000000abc9", 9),
            ("0000000000000000", 0),
            ("12fedcba", 2),
        ],
    )
    def test_last_decimal_digit(self, block_id: str, expected: int) -> None:
        """The last decimal digit, scanning from the end, is the result."""
        assert result_value_from_hash(block_id) == expected

    def test_no_digit_is_malformed(self) -> None:
        """An id without decimal digits cannot be classified."""
        with pytest.raises(MalformedBlockError):
            result_value_from_hash("abcdef")


class TestTransformTronBlock:
    """Tests for turning a payload into a record."""

    def test_normalizes_payload(self) -> None:
        """Height, id, timestamp and classifications are extracted."""
        payload = make_tron_payload(
            66_433_729,
            block_id="0000000003f5b2c1e3f1ab7c",
            timestamp_ms=1_700_000_000_000,
        )

        record = transform_tron_block(payload)

        assert record.height == 66_433_729
        assert record.hash == "0000000003f5b2c1e3f1ab7c"
        assert record.result_value == 7
        assert record.type is BlockType.ODD
        assert record.size_type is SizeType.BIG
        assert record.timestamp == datetime.fromtimestamp(1_700_000_000, tz=UTC)

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"blockID": "00ab1"},
            {"blockID": "00ab1", "block_header": {}},
            {"blockID": "00ab1", "block_header": {"raw_data": {"number": 5}}},
            {"blockID": "00ab1", "block_header": {"raw_data": {"timestamp": 1}}},
            {"blockID": 12, "block_header": {"raw_data": {"number": 5, "timestamp": 1}}},
            {"blockID": "00ab1", "block_header": {"raw_data": {"number": "5", "timestamp": 1}}},
            {"blockID": "00ab1", "block_header": {"raw_data": {"number": 5, "timestamp": "x"}}},
            {"blockID": "00ab1", "block_header": {"raw_data": {"number": -5, "timestamp": 1}}},
            {"blockID": "00ab1", "block_header": None},
        ],
    )
    def test_malformed_payloads(self, payload: dict[str, Any]) -> None:
        """Missing or mistyped fields are rejected as fetch errors."""
        with pytest.raises(MalformedBlockError) as exc_info:
            transform_tron_block(payload)

        assert isinstance(exc_info.value, FetchError)
