"""Tests for sampling rules, alignment and the sampled view."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from hash_trend.sampling import (
    InvalidRuleError,
    SamplingRule,
    align_down,
    is_aligned,
    parse_rule,
    sampled_view,
)
from tests.hash_trend.helpers import make_blocks

heights = st.integers(min_value=0, max_value=10**9)
strides = st.integers(min_value=1, max_value=10_000)
anchors = st.integers(min_value=0, max_value=10**6)


class TestSamplingRule:
    """Tests for rule construction."""

    def test_stride_below_one_rejected(self) -> None:
        """A rule with stride 0 cannot exist."""
        with pytest.raises(ValidationError):
            SamplingRule(id="x", stride=0)

    def test_negative_anchor_rejected(self) -> None:
        """Anchors are non-negative."""
        with pytest.raises(ValidationError):
            SamplingRule(id="x", stride=5, anchor_height=-1)

    def test_empty_id_rejected(self) -> None:
        """Every rule needs an id."""
        with pytest.raises(ValidationError):
            SamplingRule(id="", stride=5)

    def test_is_anchored(self) -> None:
        """Only strided rules with a positive anchor are anchored."""
        assert SamplingRule(id="a", stride=20, anchor_height=105).is_anchored
        assert not SamplingRule(id="b", stride=20).is_anchored
        assert not SamplingRule(id="c", stride=1, anchor_height=105).is_anchored


class TestParseRule:
    """Tests for validating untyped rule data."""

    def test_accepts_camel_case_keys(self) -> None:
        """Request bodies use camelCase."""
        rule = parse_rule({"id": "a", "label": "anchored", "stride": 20, "anchorHeight": 105})

        assert rule == SamplingRule(id="a", label="anchored", stride=20, anchor_height=105)

    def test_accepts_snake_case_keys(self) -> None:
        """YAML files may use snake_case."""
        rule = parse_rule({"id": "a", "stride": 20, "anchor_height": 105})

        assert rule.anchor_height == 105

    def test_coerces_numeric_strings(self) -> None:
        """Form-style numeric strings are accepted for numeric fields."""
        assert parse_rule({"id": "a", "stride": "20"}).stride == 20

    def test_numeric_id_read_as_text(self) -> None:
        """An unquoted YAML id such as 20 becomes the id "20"."""
        assert parse_rule({"id": 20, "stride": 20}).id == "20"

    @pytest.mark.parametrize(
        "data",
        [
            {"id": "a", "stride": 0},
            {"id": "a", "stride": -3},
            {"id": "a"},
            {"stride": 20},
            {"id": "a", "stride": 20, "anchorHeight": -1},
            {"id": "a", "stride": 20, "unknown": True},
            {"id": True, "stride": 20},
        ],
    )
    def test_invalid_data_raises_invalid_rule(self, data: dict[str, object]) -> None:
        """Malformed rules surface as InvalidRuleError."""
        with pytest.raises(InvalidRuleError):
            parse_rule(data)


class TestIsAligned:
    """Tests for the alignment predicate."""

    @given(height=heights)
    def test_stride_one_selects_everything(self, height: int) -> None:
        """A stride of one keeps every height."""
        assert is_aligned(height, SamplingRule(id="1", stride=1))

    @given(height=heights, stride=strides)
    def test_unanchored_is_divisibility(self, height: int, stride: int) -> None:
        """Without an anchor, alignment is divisibility by the stride."""
        rule = SamplingRule(id="r", stride=stride)
        assert is_aligned(height, rule) == (height % stride == 0)

    @given(height=heights, stride=strides.filter(lambda s: s > 1), anchor=anchors.filter(bool))
    def test_anchored_excludes_heights_below_anchor(
        self, height: int, stride: int, anchor: int
    ) -> None:
        """No height below the anchor is ever selected."""
        rule = SamplingRule(id="r", stride=stride, anchor_height=anchor)
        if height < anchor:
            assert not is_aligned(height, rule)
        else:
            assert is_aligned(height, rule) == ((height - anchor) % stride == 0)

    def test_anchor_itself_is_aligned(self) -> None:
        """The anchor height is the first selected height."""
        rule = SamplingRule(id="r", stride=20, anchor_height=105)

        assert is_aligned(105, rule)
        assert is_aligned(125, rule)
        assert not is_aligned(120, rule)
        assert not is_aligned(85, rule)


class TestAlignDown:
    """Tests for rounding a height down to an aligned one."""

    @given(height=heights, stride=strides)
    def test_result_is_aligned_and_closest(self, height: int, stride: int) -> None:
        """The result is aligned, not above the input, and less than a stride below."""
        rule = SamplingRule(id="r", stride=stride)
        aligned = align_down(height, rule)

        assert is_aligned(aligned, rule)
        assert height - stride < aligned <= height

    @given(stride=strides.filter(lambda s: s > 1), anchor=anchors.filter(bool), offset=heights)
    def test_anchored_result_is_aligned(self, stride: int, anchor: int, offset: int) -> None:
        """At or above the anchor, the result is aligned to the anchor."""
        rule = SamplingRule(id="r", stride=stride, anchor_height=anchor)
        height = anchor + offset
        aligned = align_down(height, rule)

        assert is_aligned(aligned, rule)
        assert height - stride < aligned <= height

    def test_examples(self) -> None:
        """Concrete roundings."""
        assert align_down(1000, SamplingRule(id="r", stride=100)) == 1000
        assert align_down(1099, SamplingRule(id="r", stride=100)) == 1000
        assert align_down(150, SamplingRule(id="r", stride=20, anchor_height=105)) == 145
        assert align_down(7, SamplingRule(id="r", stride=1)) == 7


class TestSampledView:
    """Tests for filtering blocks by a rule."""

    def test_unanchored_view(self) -> None:
        """Stride 20 keeps multiples of 20, newest first."""
        blocks = make_blocks(range(140, 99, -1))

        view = sampled_view(blocks, SamplingRule(id="20", stride=20))

        assert [block.height for block in view] == [140, 120, 100]

    def test_anchored_view(self) -> None:
        """Anchor 105 with stride 20 keeps 125 and 105 in the window 100..140."""
        blocks = make_blocks(range(140, 99, -1))

        view = sampled_view(blocks, SamplingRule(id="a", stride=20, anchor_height=105))

        assert [block.height for block in view] == [125, 105]

    def test_preserves_input_order(self) -> None:
        """The view does not reorder blocks."""
        blocks = make_blocks([100, 300, 200])

        view = sampled_view(blocks, SamplingRule(id="100", stride=100))

        assert [block.height for block in view] == [100, 300, 200]
