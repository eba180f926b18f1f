"""Execution context - dotted-path data store with lazy providers."""

from .context import Context, PropertyAccessor, deep_merge
from .providers import ContextProvider

__all__ = [
    "Context",
    "PropertyAccessor",
    "deep_merge",
    "ContextProvider",
]
