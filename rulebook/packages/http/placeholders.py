"""Placeholder resolvers for request data: {cookie.x}, {param.x}, {header.x}."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rulebook.context import Context


def _lookup(entries: Any, name: str, case_insensitive: bool) -> Any:
    if not isinstance(entries, Mapping):
        return None
    if not case_insensitive:
        return entries.get(name)
    lowered = name.lower()
    for key, value in entries.items():
        if str(key).lower() == lowered:
            return value
    return None


def resolve_cookie(context: Context, parts: list[str]) -> Any:
    if not parts:
        return None
    return _lookup(context.get("cookie"), parts[0], case_insensitive=True)


def resolve_param(context: Context, parts: list[str]) -> Any:
    if not parts:
        return None
    return _lookup(context.get("param"), parts[0], case_insensitive=False)


def resolve_header(context: Context, parts: list[str]) -> Any:
    if not parts:
        return None
    return _lookup(context.get("request.headers"), parts[0], case_insensitive=True)


RESOLVERS = {
    "cookie": resolve_cookie,
    "param": resolve_param,
    "header": resolve_header,
}
