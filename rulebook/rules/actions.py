"""Action implementations.

Actions are side-effecting steps run in declared order when a rule matches.
Every key of an action spec other than type and locked is an argument;
string arguments may carry {placeholder} tokens resolved on read.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Protocol

from rulebook.context import Context
from rulebook.core.coercion import is_numeric, is_scalar, stringify
from rulebook.core.logging import get_logger
from rulebook.rules.schemas import ActionSpec

if TYPE_CHECKING:
    from rulebook.placeholders import PlaceholderResolver

logger = get_logger(__name__)

ActionFn = Callable[[ActionSpec, Context], Any]

_TRUE_STRINGS = {"true", "yes", "1", "on"}
_FALSE_STRINGS = {"false", "no", "0", "off", ""}


class Action(Protocol):
    def execute(self, context: Context) -> None:
        ...


def as_action_spec(spec: ActionSpec | Mapping[str, Any]) -> ActionSpec:
    if isinstance(spec, ActionSpec):
        return spec
    return ActionSpec.model_validate(dict(spec))


class ArgumentValue:
    """An action argument with typed accessors.

    Placeholders in string values are resolved the first time the value is read.
    """

    def __init__(self, value: Any, resolver: PlaceholderResolver | None = None):
        self._raw = value
        self._value = value
        self._resolver = resolver
        self._resolved = False

    @property
    def value(self) -> Any:
        if not self._resolved:
            if self._resolver is not None:
                self._value = self._resolver.resolve_value(self._value)
            self._resolved = True
        return self._value

    def raw(self) -> Any:
        """The configured value, placeholders untouched."""
        return self._raw

    def as_string(self) -> str:
        value = self.value
        return stringify(value) if is_scalar(value) else ""

    def as_bool(self) -> bool:
        value = self.value
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        return bool(value)

    def as_int(self) -> int:
        value = self.value
        if isinstance(value, bool):
            return int(value)
        if is_numeric(value):
            return int(float(value))
        return 0

    def as_float(self) -> float:
        value = self.value
        if isinstance(value, bool):
            return float(value)
        if is_numeric(value):
            return float(value)
        return 0.0

    def as_list(self) -> list[Any]:
        """List value; strings are decoded as JSON arrays."""
        value = self.value
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, Mapping):
            return list(value.values())
        if isinstance(value, str):
            if not value.strip():
                return []
            try:
                decoded = json.loads(value)
            except ValueError:
                return [value]
            return decoded if isinstance(decoded, list) else [decoded]
        return [value]

    def __repr__(self) -> str:
        return f"ArgumentValue({self._value!r})"


class BaseAction(ABC):
    """Base class for built-in and package-provided actions."""

    def __init__(
        self,
        spec: ActionSpec | Mapping[str, Any],
        context: Context,
        resolver: PlaceholderResolver | None = None,
    ):
        self.spec = as_action_spec(spec)
        self.context = context
        self.resolver = resolver

    @property
    def type(self) -> str:
        return self.spec.type

    @property
    def args(self) -> dict[str, Any]:
        return self.spec.args

    def has_arg(self, key: str) -> bool:
        return key in self.args

    def get_arg(self, key: str, default: Any = None) -> ArgumentValue:
        return ArgumentValue(self.args.get(key, default), self.resolver)

    def resolve_value(self, value: str) -> str:
        if self.resolver is None:
            return value
        return self.resolver.resolve(value)

    @abstractmethod
    def execute(self, context: Context) -> None:
        """Apply the action to the context."""


class CallbackAction:
    """Wraps a plain function registered for an action type."""

    def __init__(
        self,
        type: str,
        fn: ActionFn,
        spec: ActionSpec | Mapping[str, Any],
        context: Context,
    ):
        self.type = type
        self.fn = fn
        self.spec = as_action_spec(spec)
        self.context = context

    def execute(self, context: Context) -> None:
        self.fn(self.spec, context)


# =============================================================================
# Built-in actions
# =============================================================================


class SetContextAction(BaseAction):
    """Write a value into the context: {type: set_context, path: a.b, value: ...}."""

    def execute(self, context: Context) -> None:
        path = self.get_arg("path").as_string()
        if not path:
            logger.warning("set_context_missing_path", args=sorted(self.args))
            return
        context.set(path, self.get_arg("value").value)


class SetCacheAction(BaseAction):
    """Toggle caching for the current request: writes cache.enabled and cache.ttl."""

    def execute(self, context: Context) -> None:
        context.set("cache.enabled", self.get_arg("enabled", True).as_bool())
        if self.has_arg("ttl"):
            context.set("cache.ttl", self.get_arg("ttl").as_int())
