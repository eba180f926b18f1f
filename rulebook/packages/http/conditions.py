"""HTTP request conditions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rulebook.context import Context
from rulebook.rules.conditions import BaseCondition, NamedEntryCondition


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


class RequestUrlCondition(BaseCondition):
    """Matches the request URI (path plus query string)."""

    def get_actual_value(self, context: Context) -> Any:
        return context.get("request.uri", "")


class RequestMethodCondition(BaseCondition):
    def get_actual_value(self, context: Context) -> Any:
        return context.get("request.method", "")


class RequestHeaderCondition(NamedEntryCondition):
    """Header value or presence. Header names are case-insensitive."""

    @property
    def entry_name(self) -> str:
        return self.spec.name or self.spec.get("header") or ""

    def get_entries(self, context: Context) -> Mapping[str, Any]:
        return _mapping(context.get("request.headers"))


class RequestParamCondition(NamedEntryCondition):
    """Query parameter value or presence."""

    @property
    def entry_name(self) -> str:
        return self.spec.name or self.spec.get("param") or ""

    def get_entries(self, context: Context) -> Mapping[str, Any]:
        return _mapping(context.get("param"))


class CookieCondition(NamedEntryCondition):
    """Cookie value or presence.

    {type: cookie, name: session} matches whenever a session cookie is set,
    whatever its value; add a value to compare it.
    """

    @property
    def entry_name(self) -> str:
        return self.spec.name or self.spec.get("cookie") or ""

    def get_entries(self, context: Context) -> Mapping[str, Any]:
        return _mapping(context.get("cookie"))


class ConstantCondition(BaseCondition):
    """Compares a named constant from the package configuration. Undefined is None."""

    def get_actual_value(self, context: Context) -> Any:
        name = self.spec.name or self.spec.get("constant")
        if not name:
            return None
        return _mapping(context.get("constant")).get(name)
