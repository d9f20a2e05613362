"""
Rule book: the user-managed set of sampling rules.

The rule book is plain state management over SamplingRule values. It
guarantees two things the rest of the engine relies on:

1. There is always at least one rule, so there is always an active rule.
2. Every stored rule is valid (stride >= 1), because SamplingRule cannot be
   constructed otherwise.

Every operation validates first and mutates second. A rejected operation
leaves the book exactly as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from .rule import InvalidRuleError, SamplingRule

logger = logging.getLogger(__name__)


DEFAULT_RULES: tuple[SamplingRule, ...] = (
    SamplingRule(id="1", label="1 block", stride=1),
    SamplingRule(id="20", label="20 blocks", stride=20),
    SamplingRule(id="60", label="60 blocks", stride=60),
    SamplingRule(id="100", label="100 blocks", stride=100),
)
"""Rules available before the user defines any."""


@dataclass(slots=True)
class RuleBook:
    """Ordered rules plus the id of the active one."""

    _rules: dict[str, SamplingRule] = field(default_factory=dict)
    """Rules by id, in insertion order."""

    _active_id: str = ""
    """Id of the rule views are built with."""

    @classmethod
    def from_rules(cls, rules: Iterable[SamplingRule] = DEFAULT_RULES) -> RuleBook:
        """
        Build a book from an initial rule list.

        The first rule becomes active.

        Raises:
            InvalidRuleError: If the list is empty or repeats an id.
        """
        book = cls()
        for rule in rules:
            book.add(rule)
        if not book._rules:
            raise InvalidRuleError("A rule book needs at least one rule")
        return book

    def __len__(self) -> int:
        """Return the number of rules."""
        return len(self._rules)

    def __iter__(self) -> Iterator[SamplingRule]:
        """Iterate rules in insertion order."""
        return iter(list(self._rules.values()))

    def __contains__(self, rule_id: str) -> bool:
        """Check if a rule id is defined."""
        return rule_id in self._rules

    @property
    def active(self) -> SamplingRule:
        """The rule currently used to build views."""
        return self._rules[self._active_id]

    def get(self, rule_id: str) -> SamplingRule:
        """
        Look up a rule by id.

        Raises:
            InvalidRuleError: If no rule has this id.
        """
        rule = self._rules.get(rule_id)
        if rule is None:
            raise InvalidRuleError(f"Unknown rule id: {rule_id!r}")
        return rule

    def add(self, rule: SamplingRule) -> None:
        """
        Append a new rule.

        The first rule ever added becomes active.

        Raises:
            InvalidRuleError: If a rule with the same id exists.
        """
        if rule.id in self._rules:
            raise InvalidRuleError(f"Duplicate rule id: {rule.id!r}")
        self._rules[rule.id] = rule
        if not self._active_id:
            self._active_id = rule.id

    def update(self, rule: SamplingRule) -> None:
        """
        Replace an existing rule, keeping its position.

        Raises:
            InvalidRuleError: If no rule has this id.
        """
        if rule.id not in self._rules:
            raise InvalidRuleError(f"Unknown rule id: {rule.id!r}")
        self._rules[rule.id] = rule

    def upsert(self, rule: SamplingRule) -> None:
        """Update the rule if its id exists, add it otherwise."""
        if rule.id in self._rules:
            self.update(rule)
        else:
            self.add(rule)

    def delete(self, rule_id: str) -> SamplingRule:
        """
        Remove a rule.

        Deleting the active rule re-activates the first remaining rule.

        Raises:
            InvalidRuleError: If the id is unknown or it is the last rule.
        """
        if rule_id not in self._rules:
            raise InvalidRuleError(f"Unknown rule id: {rule_id!r}")
        if len(self._rules) <= 1:
            raise InvalidRuleError("Cannot delete the last remaining rule")

        removed = self._rules.pop(rule_id)
        if self._active_id == rule_id:
            self._active_id = next(iter(self._rules))
            logger.info("Active rule %s deleted, falling back to %s", rule_id, self._active_id)
        return removed

    def activate(self, rule_id: str) -> SamplingRule:
        """
        Make a rule the active one.

        Raises:
            InvalidRuleError: If no rule has this id.
        """
        rule = self.get(rule_id)
        self._active_id = rule.id
        return rule
