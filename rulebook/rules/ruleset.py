"""Id-keyed, ordered rule collection."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from rulebook.rules.schemas import Rule, as_rule


class RuleSet:
    """Ordered rules keyed by id.

    Adding a rule whose id is already present replaces the existing rule at
    its original position.
    """

    def __init__(self, rules: Iterable[Rule | Mapping[str, Any]] = ()):
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            self.add(rule)

    def add(self, rule: Rule | Mapping[str, Any]) -> Rule:
        rule = as_rule(rule)
        self._rules[rule.id] = rule
        return rule

    def remove(self, rule_id: str) -> bool:
        return self._rules.pop(rule_id, None) is not None

    def get(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    def clear(self) -> None:
        self._rules.clear()

    def sorted(self) -> list[Rule]:
        """Rules by ascending order; ties keep insertion order."""
        return sorted(self._rules.values(), key=lambda rule: rule.order)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules
