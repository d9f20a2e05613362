"""Tests for the shared pydantic base models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from hash_trend.types import CamelModel, StrictBaseModel


class Sample(StrictBaseModel):
    """Strict model with a multi-word field."""

    anchor_height: int
    label: str = ""


class Loose(CamelModel):
    """Non-strict model with a multi-word field."""

    poll_interval: float


class TestStrictBaseModel:
    """Tests for strict, frozen models."""

    def test_accepts_both_key_styles(self) -> None:
        """Fields populate by name or by camelCase alias."""
        assert Sample(anchor_height=1) == Sample.model_validate({"anchorHeight": 1})

    def test_rejects_coercion(self) -> None:
        """Strict models do not coerce strings to numbers."""
        with pytest.raises(ValidationError):
            Sample.model_validate({"anchorHeight": "1"})

    def test_rejects_extra_fields(self) -> None:
        """Unknown fields are errors."""
        with pytest.raises(ValidationError):
            Sample.model_validate({"anchorHeight": 1, "stride": 5})

    def test_frozen(self) -> None:
        """Instances cannot be mutated."""
        sample = Sample(anchor_height=1)

        with pytest.raises(ValidationError):
            sample.label = "x"  # type: ignore[misc]

    def test_copy_validates_updates(self) -> None:
        """copy() builds a new validated instance."""
        sample = Sample(anchor_height=1, label="a")

        assert sample.copy(label="b") == Sample(anchor_height=1, label="b")
        with pytest.raises(ValidationError):
            sample.copy(anchor_height="x")

    def test_to_json_dict(self) -> None:
        """JSON dicts use camelCase keys."""
        assert Sample(anchor_height=3).to_json_dict() == {"anchorHeight": 3, "label": ""}


class TestCamelModel:
    """Tests for the non-strict base."""

    def test_coerces(self) -> None:
        """Lax models coerce compatible values."""
        assert Loose.model_validate({"pollInterval": 2}).poll_interval == 2.0
