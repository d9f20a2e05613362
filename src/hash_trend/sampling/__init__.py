"""
Sampling rules and the alignment filter.

A sampling rule picks every N-th block height, optionally counted from an
anchor height. The rest of the engine only ever asks one question of a rule:
is this height aligned?
"""

from .rule import (
    InvalidRuleError,
    SamplingRule,
    align_down,
    is_aligned,
    parse_rule,
    sampled_view,
)
from .rules import DEFAULT_RULES, RuleBook

__all__ = [
    "DEFAULT_RULES",
    "InvalidRuleError",
    "RuleBook",
    "SamplingRule",
    "align_down",
    "is_aligned",
    "parse_rule",
    "sampled_view",
]
