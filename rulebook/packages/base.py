"""Package base class.

A package bundles the pieces a domain contributes to the engine: context
providers, condition and action types, placeholder resolvers, static context
data, and a bucket of rules registered against it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rulebook.context import Context, ContextProvider
from rulebook.core.logging import get_logger
from rulebook.placeholders import PlaceholderFn
from rulebook.rules.registry import ActionRegistry, ConditionRegistry
from rulebook.rules.ruleset import RuleSet
from rulebook.rules.schemas import Rule

logger = get_logger(__name__)


class BasePackage:
    """Base class for rule packages.

    Subclasses set ``name`` and usually ``namespaces``, and override the
    hooks they need. Everything defaults to contributing nothing.
    """

    name: str = ""
    namespaces: tuple[str, ...] = ()
    required_packages: tuple[str, ...] = ()

    def __init__(self):
        if not self.name:
            raise TypeError(f"{type(self).__name__} must define a package name")
        self._rules = RuleSet()

    def is_available(self) -> bool:
        """Whether the package can load in the current environment."""
        return True

    # -------------------------------------------------------------------------
    # Contributions
    # -------------------------------------------------------------------------

    def build_context(self) -> dict[str, Any]:
        """Static data merged into every context created for loaded packages."""
        return {}

    def context_providers(self) -> list[ContextProvider]:
        return []

    def register_context_providers(self, context: Context) -> list[str]:
        """Register this package's available providers on a context.

        Returns:
            Keys of the providers that were registered
        """
        registered = []
        for provider in self.context_providers():
            if provider.register(context):
                registered.append(provider.key)
            else:
                logger.debug("context_provider_unavailable", package=self.name, key=provider.key)
        return registered

    def register_types(self, conditions: ConditionRegistry, actions: ActionRegistry) -> None:
        """Add this package's condition and action types to the registries."""

    def placeholder_resolvers(self) -> dict[str, PlaceholderFn]:
        return {}

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def register_rule(self, rule: Rule | Mapping[str, Any]) -> Rule:
        return self._rules.add(rule)

    def unregister_rule(self, rule_id: str) -> bool:
        return self._rules.remove(rule_id)

    def get_rules(self) -> list[Rule]:
        return list(self._rules)

    def sorted_rules(self) -> list[Rule]:
        """Registered rules by ascending order, stable for equal orders."""
        return self._rules.sorted()

    def clear(self) -> None:
        """Drop every rule registered against this package."""
        self._rules.clear()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
