"""Rulebook - declarative rule evaluation with pluggable packages."""

from rulebook.context import Context, ContextProvider
from rulebook.core import RulebookError, RuleValidationError, configure_logging, get_settings
from rulebook.packages import BasePackage, PackageManager
from rulebook.placeholders import PlaceholderResolver
from rulebook.rules import (
    ActionSpec,
    ConditionSpec,
    ExecutionResult,
    MatchType,
    Rule,
    RuleEngine,
    RuleLoader,
    RuleSet,
    compare,
)
from rulebook.runtime import Rulebook

__version__ = "0.1.0"

__all__ = [
    "Rulebook",
    "RuleEngine",
    "Rule",
    "ConditionSpec",
    "ActionSpec",
    "MatchType",
    "ExecutionResult",
    "RuleLoader",
    "RuleSet",
    "Context",
    "ContextProvider",
    "PlaceholderResolver",
    "BasePackage",
    "PackageManager",
    "compare",
    "configure_logging",
    "get_settings",
    "RulebookError",
    "RuleValidationError",
]
