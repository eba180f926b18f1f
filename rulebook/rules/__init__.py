"""Rules: data model, comparison semantics, conditions, actions and the engine."""

from .schemas import (
    ActionSpec,
    ConditionSpec,
    ExecutionResult,
    MatchType,
    Rule,
    RuleMetadata,
)
from .comparator import Operator, compare, compare_many, reduce_matches
from .conditions import (
    BaseCondition,
    CallbackCondition,
    ContextValueCondition,
    NamedEntryCondition,
    NullCondition,
)
from .actions import (
    ArgumentValue,
    BaseAction,
    CallbackAction,
    SetCacheAction,
    SetContextAction,
)
from .registry import (
    ActionRegistry,
    ConditionRegistry,
    default_action_registry,
    default_condition_registry,
)
from .engine import RuleEngine
from .loader import RuleLoader
from .ruleset import RuleSet

__all__ = [
    # Schemas
    "ActionSpec",
    "ConditionSpec",
    "ExecutionResult",
    "MatchType",
    "Rule",
    "RuleMetadata",
    # Comparison
    "Operator",
    "compare",
    "compare_many",
    "reduce_matches",
    # Conditions
    "BaseCondition",
    "CallbackCondition",
    "ContextValueCondition",
    "NamedEntryCondition",
    "NullCondition",
    # Actions
    "ArgumentValue",
    "BaseAction",
    "CallbackAction",
    "SetCacheAction",
    "SetContextAction",
    # Registries
    "ActionRegistry",
    "ConditionRegistry",
    "default_action_registry",
    "default_condition_registry",
    # Engine
    "RuleEngine",
    "RuleLoader",
    "RuleSet",
]
