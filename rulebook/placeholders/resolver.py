"""
Placeholder interpolation for rule values.

Templates carry tokens like {request.uri} or {cookie.session_id}. The first
segment of a token is its category; a resolver registered for the category
handles it, otherwise the whole token is read as a context path.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

from rulebook.context import Context
from rulebook.core.coercion import is_scalar, stringify
from rulebook.core.config import get_settings
from rulebook.core.logging import get_logger

logger = get_logger(__name__)

PlaceholderFn = Callable[[Context, list[str]], Any]

_TOKEN_RE = re.compile(r"\{([^}]+)\}")


class PlaceholderResolver:
    """Resolves {category.path} tokens against a context."""

    def __init__(
        self,
        context: Context,
        resolvers: Mapping[str, PlaceholderFn] | None = None,
        delimiter: str | None = None,
    ):
        """
        Args:
            context: Context that fallback lookups read from
            resolvers: Category resolvers, called with (context, path_segments)
            delimiter: Separator between category and path segments
        """
        self.context = context
        self.delimiter = delimiter or get_settings().placeholder_delimiter
        self._resolvers: dict[str, PlaceholderFn] = dict(resolvers or {})

    def register(self, category: str, resolver: PlaceholderFn) -> None:
        """Register a category resolver, replacing any existing one."""
        if not callable(resolver):
            raise TypeError(f"Resolver for placeholder category '{category}' is not callable")
        self._resolvers[category] = resolver

    def has_resolver(self, category: str) -> bool:
        return category in self._resolvers

    def resolve(self, template: str) -> str:
        """Replace every resolvable token in a template.

        Unresolvable tokens are left exactly as written.
        """
        if "{" not in template:
            return template
        return _TOKEN_RE.sub(self._replace, template)

    def resolve_value(self, value: Any) -> Any:
        """Resolve strings; return anything else unchanged."""
        return self.resolve(value) if isinstance(value, str) else value

    def _replace(self, found: re.Match) -> str:
        token = found.group(1)
        value = self.lookup(token)
        return found.group(0) if value is None else value

    def lookup(self, token: str) -> str | None:
        """Resolve a single token body (without braces). None if unresolved."""
        category, *parts = token.split(self.delimiter)
        if not category:
            return None

        resolver = self._resolvers.get(category)
        if resolver is not None:
            try:
                value = resolver(self.context, parts)
            except Exception as exc:
                logger.error(
                    "placeholder_resolver_failed",
                    category=category,
                    token=token,
                    error=str(exc),
                )
                return None
            return stringify(value) if is_scalar(value) else None

        if not parts:
            return None
        value = self.context.get(".".join([category, *parts]))
        return stringify(value) if is_scalar(value) else None
