"""
Runtime facade.

Rulebook wires a package manager, the type registries and an engine
together for the common flow: register packages, register rules, then
execute the rules of the loaded (or explicitly allowed) packages.

Example:
    rulebook = Rulebook()
    rulebook.init()  # registers and loads the HTTP package
    rulebook.register_rule({
        "id": "no-cache-for-sessions",
        "conditions": [{"type": "cookie", "name": "session"}],
        "actions": [{"type": "set_cache", "enabled": False}],
    })
    result = rulebook.execute_rules()
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from rulebook.context import Context
from rulebook.core.logging import get_logger
from rulebook.packages import BasePackage, PackageManager
from rulebook.packages.http import HttpPackage
from rulebook.placeholders import PlaceholderFn
from rulebook.rules.actions import ActionFn
from rulebook.rules.conditions import ConditionFn
from rulebook.rules.engine import RuleEngine
from rulebook.rules.registry import (
    ActionRegistry,
    ConditionRegistry,
    default_action_registry,
    default_condition_registry,
)
from rulebook.rules.ruleset import RuleSet
from rulebook.rules.schemas import ExecutionResult, Rule, as_rule

logger = get_logger(__name__)


class Rulebook:
    """Packages, registries and engine for one application."""

    def __init__(
        self,
        conditions: ConditionRegistry | None = None,
        actions: ActionRegistry | None = None,
    ):
        self.conditions = conditions if conditions is not None else default_condition_registry()
        self.actions = actions if actions is not None else default_action_registry()
        self.packages = PackageManager(self.conditions, self.actions)
        self.engine = RuleEngine(self.conditions, self.actions, self.packages)
        self._core_rules = RuleSet()

    # =========================================================================
    # Setup
    # =========================================================================

    def init(
        self,
        package_names: Iterable[str] | None = None,
        packages: Iterable[BasePackage] | None = None,
    ) -> list[str]:
        """Register packages and load them.

        Args:
            package_names: Packages to load; None loads every available one
            packages: Packages to register; None registers the HTTP package

        Returns:
            Names of all loaded packages
        """
        if packages is None:
            packages = [HttpPackage()]

        for package in packages:
            if not isinstance(package, BasePackage):
                logger.error("package_rejected", package_type=type(package).__name__)
                continue
            self.packages.register(package)

        loaded = self.packages.load(package_names)
        if not loaded:
            logger.warning("no_packages_loaded")
        return loaded

    def register_condition(self, type_name: str, fn: ConditionFn) -> None:
        """Register a callback condition: fn(spec, context) -> bool."""
        self.conditions.register(type_name, fn)

    def register_action(self, type_name: str, fn: ActionFn) -> None:
        """Register a callback action: fn(spec, context)."""
        self.actions.register(type_name, fn)

    def register_placeholder(self, category: str, fn: PlaceholderFn) -> None:
        """Register a placeholder resolver: fn(context, path_segments)."""
        if not callable(fn):
            raise TypeError(f"Resolver for placeholder category '{category}' is not callable")
        self.engine.placeholders[category] = fn

    # =========================================================================
    # Rules
    # =========================================================================

    def register_rule(self, rule: Rule | Mapping[str, Any]) -> Rule:
        """Register a rule with the packages it requires.

        When the rule lists no required packages they are inferred from the
        packages owning its condition and action types. Rules that need no
        package at all are kept by the facade and run on every execution.
        """
        rule = as_rule(rule)
        if not rule.required_packages:
            inferred = self.packages.infer_required_packages(rule)
            if inferred:
                metadata = rule.metadata.model_copy(update={"required_packages": inferred})
                rule = rule.model_copy(update={"metadata": metadata})

        if rule.required_packages:
            self.packages.register_rule(rule)
        else:
            self._core_rules.add(rule)
        return rule

    def get_loaded_packages(self) -> list[str]:
        return self.packages.get_loaded_names()

    def create_context(self) -> Context:
        return self.packages.create_context()

    # =========================================================================
    # Execution
    # =========================================================================

    def execute_rules(
        self,
        allowed_packages: Iterable[str] | None = None,
        context: Context | None = None,
    ) -> ExecutionResult:
        """Execute the rules of the loaded packages, sorted by order.

        Args:
            allowed_packages: Restrict execution to these loaded packages.
                Names that are not loaded are dropped with a warning.
            context: Context to use; a fresh package context when omitted

        Returns:
            ExecutionResult; on unexpected failure its error field is set
        """
        try:
            if context is None:
                context = self.packages.create_context()

            allowed = None
            if allowed_packages is not None:
                allowed = self._validate_allowed(allowed_packages)

            rules = self.packages.collect_rules(allowed) + list(self._core_rules)
            rules.sort(key=lambda rule: rule.order)
            if not rules:
                logger.info("no_rules_to_execute")

            return self.engine.execute(rules, context, allowed)
        except Exception as exc:
            logger.error("execute_rules_failed", error=str(exc), exc_info=True)
            return ExecutionResult(
                context=context.to_dict() if isinstance(context, Context) else {},
                error=str(exc),
            )

    def _validate_allowed(self, allowed_packages: Iterable[str]) -> list[str]:
        if isinstance(allowed_packages, str):
            allowed_packages = [allowed_packages]
        validated = []
        for name in allowed_packages:
            if not isinstance(name, str):
                continue
            if self.packages.is_loaded(name):
                validated.append(name)
            else:
                logger.warning("allowed_package_not_loaded", package=name)
        if not validated:
            logger.warning("no_allowed_packages_loaded")
        return validated

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def clear(self) -> None:
        """Unload packages and drop all registered rules."""
        self.packages.clear()
        self._core_rules.clear()

    def reset(self) -> None:
        """Also forget package registrations."""
        self.packages.reset()
        self._core_rules.clear()
