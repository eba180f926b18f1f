"""Condition and action type registries.

Each engine holds its own registries; nothing here is process-global. A type
string maps either to a class (constructed with spec, context and resolver)
or to a callback function. Callbacks take precedence over classes.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable

from rulebook.context import Context
from rulebook.core.logging import get_logger
from rulebook.rules.actions import (
    Action,
    ActionFn,
    CallbackAction,
    SetCacheAction,
    SetContextAction,
    as_action_spec,
)
from rulebook.rules.conditions import (
    CallbackCondition,
    Condition,
    ConditionFn,
    ContextValueCondition,
    NullCondition,
    as_condition_spec,
)
from rulebook.rules.schemas import ActionSpec, ConditionSpec

if TYPE_CHECKING:
    from rulebook.placeholders import PlaceholderResolver

logger = get_logger(__name__)


class _TypeRegistry:
    kind = "type"

    def __init__(self):
        self._classes: dict[str, type] = {}
        self._callbacks: dict[str, Callable[..., Any]] = {}

    def register_class(self, type_name: str, cls: type) -> None:
        """Register an implementation class for a type string."""
        if not callable(cls):
            raise TypeError(f"{self.kind} class for '{type_name}' is not callable")
        self._classes[type_name] = cls

    def register(self, type_name: str, fn: Callable[..., Any]) -> None:
        """Register a callback function for a type string."""
        if not callable(fn):
            raise TypeError(f"{self.kind} callback for '{type_name}' is not callable")
        self._callbacks[type_name] = fn

    def has(self, type_name: str) -> bool:
        return type_name in self._callbacks or type_name in self._classes

    def unregister(self, type_name: str) -> bool:
        """Remove a type. Returns True if anything was registered under it."""
        found = self.has(type_name)
        self._callbacks.pop(type_name, None)
        self._classes.pop(type_name, None)
        return found

    def types(self) -> list[str]:
        return sorted(set(self._classes) | set(self._callbacks))

    def qualified_name(self, type_name: str) -> str | None:
        """Dotted module path of the implementation registered for a type."""
        impl = self._callbacks.get(type_name) or self._classes.get(type_name)
        if impl is None:
            return None
        module = getattr(impl, "__module__", None) or ""
        name = getattr(impl, "__qualname__", None) or type(impl).__qualname__
        return f"{module}.{name}" if module else name

    def __contains__(self, type_name: str) -> bool:
        return self.has(type_name)


class ConditionRegistry(_TypeRegistry):
    kind = "condition"

    def create(
        self,
        spec: ConditionSpec | Mapping[str, Any],
        context: Context,
        resolver: PlaceholderResolver | None = None,
    ) -> Condition:
        """Build the condition for a spec.

        Unknown or empty types produce a NullCondition, which never matches.
        """
        spec = as_condition_spec(spec)
        type_name = spec.type

        callback: ConditionFn | None = self._callbacks.get(type_name)
        if callback is not None:
            return CallbackCondition(type_name, callback, spec, context)

        cls = self._classes.get(type_name)
        if cls is not None:
            return cls(spec, context, resolver)

        logger.warning("unknown_condition_type", type=type_name)
        return NullCondition(type_name)


class ActionRegistry(_TypeRegistry):
    kind = "action"

    def create(
        self,
        spec: ActionSpec | Mapping[str, Any],
        context: Context,
        resolver: PlaceholderResolver | None = None,
    ) -> Action | None:
        """Build the action for a spec. Returns None for unknown types."""
        spec = as_action_spec(spec)
        type_name = spec.type

        callback: ActionFn | None = self._callbacks.get(type_name)
        if callback is not None:
            return CallbackAction(type_name, callback, spec, context)

        cls = self._classes.get(type_name)
        if cls is not None:
            return cls(spec, context, resolver)

        logger.warning("unknown_action_type", type=type_name)
        return None


def default_condition_registry() -> ConditionRegistry:
    """Condition registry holding the built-in types."""
    registry = ConditionRegistry()
    registry.register_class("context", ContextValueCondition)
    return registry


def default_action_registry() -> ActionRegistry:
    """Action registry holding the built-in types."""
    registry = ActionRegistry()
    registry.register_class("set_context", SetContextAction)
    registry.register_class("set_cache", SetCacheAction)
    return registry
