"""
Sampling rules and the alignment predicate.

A sampling rule selects a sparse, evenly spaced subset of block heights:
every `stride`-th block, counted either from height zero or from an explicit
anchor height.

Alignment
---------
::

    stride <= 1         every height qualifies
    anchor_height == 0  height % stride == 0
    anchor_height > 0   height >= anchor_height and (height - anchor_height) % stride == 0

The inverse, `align_down`, rounds a height down to the nearest qualifying
one. The backfill loader uses it to find the newest aligned height at or
below the chain head.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import Field, ValidationError

from hash_trend.chain import BlockRecord
from hash_trend.types import StrictBaseModel


class InvalidRuleError(ValueError):
    """
    A rule or rule operation was rejected.

    Raised for malformed rules (stride below 1, negative anchor), unknown rule
    ids, duplicate ids, and attempts to delete the last remaining rule. Always
    raised before any rule state is mutated.
    """


class SamplingRule(StrictBaseModel):
    """A stride-and-offset predicate over block heights."""

    id: str = Field(min_length=1)
    """Stable unique identifier."""

    label: str = ""
    """Display name. Carries no semantics."""

    stride: int = Field(ge=1)
    """Sampling interval in block heights. A stride of 1 selects every block."""

    anchor_height: int = Field(default=0, ge=0)
    """
    Height the stride is counted from.

    Zero aligns to absolute multiples of the stride. A positive anchor aligns
    to multiples offset from the anchor, and excludes every height below it.
    """

    @property
    def is_anchored(self) -> bool:
        """True when the rule counts from an explicit anchor height."""
        return self.stride > 1 and self.anchor_height > 0


def parse_rule(data: Mapping[str, Any]) -> SamplingRule:
    """
    Validate untyped rule data (YAML, JSON request bodies) into a rule.

    Numeric ids such as an unquoted YAML `id: 20` are read as their decimal
    text.

    Raises:
        InvalidRuleError: If the data does not describe a usable rule.
    """
    fields = dict(data)
    if isinstance(fields.get("id"), int) and not isinstance(fields["id"], bool):
        fields["id"] = str(fields["id"])
    try:
        return SamplingRule.model_validate(fields, strict=False)
    except ValidationError as exc:
        raise InvalidRuleError(f"Invalid sampling rule {dict(data)!r}: {exc}") from exc


def is_aligned(height: int, rule: SamplingRule) -> bool:
    """Check whether a block height is selected by the rule."""
    if rule.stride <= 1:
        return True
    if rule.is_anchored:
        return height >= rule.anchor_height and (height - rule.anchor_height) % rule.stride == 0
    return height % rule.stride == 0


def align_down(height: int, rule: SamplingRule) -> int:
    """
    Round a height down to the nearest height selected by the rule.

    For anchored rules a height below the anchor rounds to a value below the
    anchor too; callers must treat such a result as "no aligned height".
    """
    if rule.stride <= 1:
        return height
    if rule.is_anchored:
        return rule.anchor_height + ((height - rule.anchor_height) // rule.stride) * rule.stride
    return (height // rule.stride) * rule.stride


def sampled_view(blocks: Iterable[BlockRecord], rule: SamplingRule) -> list[BlockRecord]:
    """Keep the blocks aligned to the rule, preserving input order."""
    return [block for block in blocks if is_aligned(block.height, rule)]
