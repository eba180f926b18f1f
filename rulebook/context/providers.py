"""Class-based context providers.

A provider owns one top-level context key. Packages instantiate their
providers and register them on a Context; the context calls build() the
first time the key is read, after loading the declared dependencies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .context import Context


class ContextProvider(ABC):
    """Base class for lazily built context sections."""

    key: str = ""
    dependencies: tuple[str, ...] = ()

    def is_available(self) -> bool:
        """Whether this provider can run in the current environment."""
        return True

    @abstractmethod
    def build(self) -> dict[str, Any]:
        """Build the data merged into the context root.

        Returns:
            Mapping keyed by this provider's key, e.g. {"cookie": {...}}
        """

    def register(self, context: Context) -> bool:
        """Register this provider on a context.

        Returns:
            False if the provider is unavailable and was not registered
        """
        if not self.key or not self.is_available():
            return False
        context.register_provider(self.key, self.build, self.dependencies)
        return True
