"""Exceptions raised by the rulebook package.

Evaluation never raises these: unknown types, missing packages and failing
callbacks all degrade to a safe default. They surface only at the edges where
a caller hands over malformed input (rule files, registrations).
"""

from __future__ import annotations


class RulebookError(Exception):
    """Base class for rulebook errors."""


class RuleValidationError(RulebookError):
    """Raised when rule data cannot be validated into a Rule."""

    def __init__(self, rule_id: str | None, message: str):
        self.rule_id = rule_id
        super().__init__(f"Invalid rule '{rule_id}': {message}")
