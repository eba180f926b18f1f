"""Condition implementations.

A condition extracts one actual value from the context and compares it with
its configured value. Subclasses only decide where the actual value comes
from; operator handling, placeholder resolution and list values are shared.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Protocol

from rulebook.context import Context
from rulebook.core.logging import get_logger
from rulebook.rules.comparator import (
    Operator,
    compare,
    compare_many,
    name_matches,
    normalize_operator,
)
from rulebook.rules.schemas import ConditionSpec

if TYPE_CHECKING:
    from rulebook.placeholders import PlaceholderResolver

logger = get_logger(__name__)

ConditionFn = Callable[[ConditionSpec, Context], Any]


class Condition(Protocol):
    def matches(self, context: Context) -> bool:
        ...


def as_condition_spec(spec: ConditionSpec | Mapping[str, Any]) -> ConditionSpec:
    if isinstance(spec, ConditionSpec):
        return spec
    return ConditionSpec.model_validate(dict(spec))


# =============================================================================
# Base classes
# =============================================================================


class BaseCondition(ABC):
    """Shared comparison flow for value-extracting conditions.

    Args:
        spec: Condition configuration
        context: Context the condition is evaluated against
        resolver: Placeholder resolver for string expected values
    """

    def __init__(
        self,
        spec: ConditionSpec | Mapping[str, Any],
        context: Context,
        resolver: PlaceholderResolver | None = None,
    ):
        self.spec = as_condition_spec(spec)
        self.context = context
        self.resolver = resolver
        self.operator = normalize_operator(self.spec.operator or Operator.EQ.value)
        self.value = self.spec.value
        self.match_type = self.spec.match_type

    @property
    def type(self) -> str:
        return self.spec.type

    @abstractmethod
    def get_actual_value(self, context: Context) -> Any:
        """Value pulled from the context for comparison."""

    def expected_value(self) -> Any:
        """Configured value with placeholders resolved."""
        if self.resolver is None:
            return self.value
        if isinstance(self.value, (list, tuple)):
            return [self.resolver.resolve_value(item) for item in self.value]
        return self.resolver.resolve_value(self.value)

    def matches(self, context: Context) -> bool:
        actual = self.get_actual_value(context)
        expected = self.expected_value()

        if isinstance(expected, list):
            if self.match_type:
                return compare_many(actual, expected, self.operator, self.match_type)
            if self.operator in (Operator.IN, Operator.NOT_IN):
                return compare(actual, expected, self.operator)
            return compare_many(actual, expected, self.operator, "any")

        return compare(actual, expected, self.operator)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.type!r}, operator={self.operator!r})"


class ContextValueCondition(BaseCondition):
    """Compares the context value at the path given as the condition name."""

    def get_actual_value(self, context: Context) -> Any:
        path = self.spec.name or self.spec.get("path")
        if not path:
            return None
        return context.get(path)


class NamedEntryCondition(BaseCondition):
    """Base for conditions over a mapping of named entries (cookies, headers, params).

    Without a configured value the condition checks whether an entry with a
    matching name is present. Names match case-insensitively, with * and ?
    wildcards, or as a /regex/. An empty name checks whether any entry exists.
    """

    @abstractmethod
    def get_entries(self, context: Context) -> Mapping[str, Any]:
        """Named entries to search, keyed by name."""

    @property
    def entry_name(self) -> str:
        return self.spec.name or ""

    def matching_names(self, context: Context) -> list[str]:
        entries = self.get_entries(context) or {}
        pattern = self.entry_name
        if not pattern:
            return [str(key) for key in entries]
        return [str(key) for key in entries if name_matches(str(key), pattern)]

    def get_actual_value(self, context: Context) -> Any:
        entries = self.get_entries(context) or {}
        for key in self.matching_names(context):
            if key in entries:
                return entries[key]
        return None

    def matches(self, context: Context) -> bool:
        if self.spec.has_value:
            return super().matches(context)

        present = bool(self.matching_names(context))
        if self.operator in (Operator.NE, Operator.IS_NOT, Operator.NOT_EXISTS):
            return not present
        return present


# =============================================================================
# Callback and fallback conditions
# =============================================================================


class CallbackCondition:
    """Wraps a plain function registered for a condition type."""

    def __init__(
        self,
        type: str,
        fn: ConditionFn,
        spec: ConditionSpec | Mapping[str, Any],
        context: Context,
    ):
        self.type = type
        self.fn = fn
        self.spec = as_condition_spec(spec)
        self.context = context

    def matches(self, context: Context) -> bool:
        return bool(self.fn(self.spec, context))


class NullCondition:
    """Stands in for an unknown or missing condition type. Never matches."""

    def __init__(self, type: str = ""):
        self.type = type

    def matches(self, context: Context) -> bool:
        return False
