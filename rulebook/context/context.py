"""
Lazy-loading execution context.

The context is a tree of values addressed by dot-separated paths. Sections
of the tree can be registered as providers: callables that run on first
access to their top-level key and whose result is deep-merged into the tree.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any, Callable, Iterable, Protocol, runtime_checkable

from rulebook.core.logging import get_logger

logger = get_logger(__name__)

_MISSING = object()

ProviderFn = Callable[[], Mapping[str, Any] | None]


@runtime_checkable
class PropertyAccessor(Protocol):
    """Objects exposing computed properties to dotted-path lookups."""

    def get_property(self, name: str) -> Any:
        ...


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _step(current: Any, part: str) -> Any:
    """Descend one path segment. Returns _MISSING on any miss."""
    if isinstance(current, Mapping):
        if part in current:
            return current[part]
        if part.isdigit() and int(part) in current:
            return current[int(part)]
        return _MISSING

    if _is_sequence(current):
        if not part.isdigit():
            return _MISSING
        index = int(part)
        return current[index] if index < len(current) else _MISSING

    if current is None or isinstance(current, (str, bytes, int, float, bool)):
        return _MISSING

    # Opaque object: public attribute first, then the accessor hook.
    if part and not part.startswith("_"):
        try:
            value = getattr(current, part)
        except Exception:
            value = _MISSING
        if value is not _MISSING and value is not None and not callable(value):
            return value

    if isinstance(current, PropertyAccessor):
        try:
            value = current.get_property(part)
        except Exception:
            logger.debug("property_accessor_failed", property=part)
            return _MISSING
        return _MISSING if value is None else value

    return _MISSING


def deep_merge(base: Mapping[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Merge mappings recursively; incoming values win except where both are mappings."""
    merged = dict(base)
    for key, value in incoming.items():
        existing = merged.get(key)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


class Context:
    """Key/value store with dotted paths and lazily loaded sections.

    Example:
        context = Context()
        context.register_provider("post", lambda: {"post": {"id": 1, "type": "page"}})
        context.get("post.type")  # loads the provider once -> "page"
    """

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data) if data else {}
        self._providers: dict[str, ProviderFn] = {}
        self._dependencies: dict[str, tuple[str, ...]] = {}
        self._loaded: set[str] = set()

    # -------------------------------------------------------------------------
    # Providers
    # -------------------------------------------------------------------------

    def register_provider(
        self,
        key: str,
        provider: ProviderFn,
        dependencies: Iterable[str] = (),
    ) -> Context:
        """Register a lazy provider for a top-level key.

        Args:
            key: Top-level context key (e.g. 'request', 'cookie')
            provider: Callable returning a mapping merged at the root
            dependencies: Provider keys that must be loaded first

        Returns:
            self, for chaining
        """
        if not callable(provider):
            raise TypeError(f"Provider for context key '{key}' is not callable")
        self._providers[key] = provider
        self._dependencies[key] = tuple(dependencies)
        return self

    def has_provider(self, key: str) -> bool:
        return key in self._providers

    def provider_keys(self) -> list[str]:
        return list(self._providers)

    def is_loaded(self, key: str) -> bool:
        return key in self._loaded

    def load(self, key: str) -> Context:
        """Materialize a provider key and its dependencies.

        Idempotent: a provider runs at most once per context. The key is
        marked loaded before its provider runs, so a provider that reads
        its own key does not recurse.
        """
        if key in self._loaded:
            return self
        self._loaded.add(key)

        provider = self._providers.get(key)
        if provider is None:
            return self

        for dependency in self._dependencies.get(key, ()):
            self.load(dependency)

        try:
            result = provider()
        except Exception as exc:
            logger.error("context_provider_failed", key=key, error=str(exc), exc_info=True)
            return self

        if isinstance(result, Mapping):
            self._data = deep_merge(self._data, result)
        elif result is not None:
            logger.warning(
                "context_provider_invalid_result",
                key=key,
                result_type=type(result).__name__,
            )
        return self

    # -------------------------------------------------------------------------
    # Path access
    # -------------------------------------------------------------------------

    def get(self, path: str, default: Any = None) -> Any:
        """Read a value by dotted path, loading its top-level provider on demand."""
        parts = path.split(".")
        if parts[0] in self._providers:
            self.load(parts[0])

        current: Any = self._data
        for part in parts:
            current = _step(current, part)
            if current is _MISSING or current is None:
                return default
        return current

    def has(self, path: str) -> bool:
        return self.get(path, _MISSING) is not _MISSING

    def set(self, path: str, value: Any) -> Context:
        """Write a value by dotted path, creating intermediate mappings."""
        parts = path.split(".")
        current: Any = self._data
        for part in parts[:-1]:
            current = self._child_for_write(current, part)
        self._assign(current, parts[-1], value)
        return self

    @staticmethod
    def _child_for_write(container: Any, part: str) -> Any:
        if isinstance(container, MutableSequence) and part.isdigit() and int(part) < len(container):
            child = container[int(part)]
            if isinstance(child, (MutableMapping, MutableSequence)):
                return child
            container[int(part)] = {}
            return container[int(part)]

        child = container.get(part) if isinstance(container, MutableMapping) else None
        if isinstance(child, (MutableMapping, MutableSequence)):
            return child
        fresh: dict[str, Any] = {}
        Context._assign(container, part, fresh)
        return fresh

    @staticmethod
    def _assign(container: Any, part: str, value: Any) -> None:
        if isinstance(container, MutableSequence) and part.isdigit():
            index = int(part)
            if index < len(container):
                container[index] = value
                return
            if index == len(container):
                container.append(value)
                return
        if isinstance(container, MutableMapping):
            container[part] = value

    def to_dict(self) -> dict[str, Any]:
        """Snapshot of all materialized data."""
        return dict(self._data)

    def __contains__(self, path: str) -> bool:
        return self.has(path)

    def __repr__(self) -> str:
        return f"Context(keys={sorted(self._data)}, loaded={sorted(self._loaded)})"
