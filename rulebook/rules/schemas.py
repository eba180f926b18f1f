"""Rule data model.

Rules are plain data: an id, conditions, actions and metadata. Condition and
action specs accept arbitrary extra keys, which become arguments for the
condition or action type that handles them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rulebook.core.config import get_settings


class MatchType(str, Enum):
    """How a rule's condition results are combined."""

    ALL = "all"
    ANY = "any"
    NONE = "none"


class ConditionSpec(BaseModel):
    """A single condition as configured in a rule."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="", description="Registered condition type")
    name: str | None = Field(default=None, description="Entry name for named-entry conditions")
    value: Any = Field(default=None, description="Expected value, list of values, or placeholder template")
    operator: str | None = Field(default=None, description="Comparison operator, '=' when omitted")
    match_type: str | None = Field(default=None, description="Reduction for list values: all, any, none")
    args: list[Any] = Field(default_factory=list, description="Positional arguments for callback conditions")

    @field_validator("operator", "match_type", mode="before")
    @classmethod
    def _drop_non_strings(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @property
    def has_value(self) -> bool:
        """True if a value was supplied, even an empty one."""
        return "value" in self.model_fields_set

    @property
    def extra(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Read a declared field or an extra key."""
        if key in type(self).model_fields:
            return getattr(self, key)
        return (self.model_extra or {}).get(key, default)


class ActionSpec(BaseModel):
    """A single action as configured in a rule."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="", description="Registered action type")
    locked: bool = Field(
        default=False,
        description="Lock this action type for the rest of the pass once it runs",
    )

    @property
    def args(self) -> dict[str, Any]:
        """Every configured key except type and locked."""
        return dict(self.model_extra or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.args.get(key, default)


class RuleMetadata(BaseModel):
    """Rule metadata. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    required_packages: list[str] = Field(default_factory=list)

    @field_validator("required_packages", mode="before")
    @classmethod
    def _coerce_packages(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


def _default_order() -> int:
    return get_settings().default_rule_order


class Rule(BaseModel):
    """A complete rule specification."""

    id: str
    title: str = ""
    enabled: bool = True
    match_type: MatchType = MatchType.ALL
    order: int = Field(default_factory=_default_order)
    conditions: list[ConditionSpec] = Field(default_factory=list)
    actions: list[ActionSpec] = Field(default_factory=list)
    metadata: RuleMetadata = Field(default_factory=RuleMetadata)

    @field_validator("match_type", mode="before")
    @classmethod
    def _normalize_match_type(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return MatchType.ALL
        value = value.strip().lower()
        if value not in {m.value for m in MatchType}:
            return MatchType.ALL
        return value

    @property
    def required_packages(self) -> list[str]:
        return self.metadata.required_packages


class ExecutionResult(BaseModel):
    """Statistics and final context snapshot from one evaluation pass."""

    rules_processed: int = 0
    rules_skipped: int = 0
    rules_matched: int = 0
    actions_executed: int = 0
    context: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


def as_rule(rule: Rule | dict[str, Any]) -> Rule:
    """Validate a plain dict into a Rule; pass Rule instances through."""
    if isinstance(rule, Rule):
        return rule
    return Rule.model_validate(rule)
