"""
Package registry.

Tracks registered package descriptors, loads them with their dependencies,
and maps fully qualified names to the package that owns them.

Loading is all-or-nothing per requested root: the dependency chain is
planned first and only committed when every package in it resolves. A
missing, unavailable or circular dependency excludes the whole root, while
other roots in the same call load independently.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from rulebook.context import Context
from rulebook.core.logging import get_logger
from rulebook.placeholders import PlaceholderFn
from rulebook.rules.registry import ActionRegistry, ConditionRegistry
from rulebook.rules.schemas import Rule, as_rule

from .base import BasePackage

logger = get_logger(__name__)


class PackageManager:
    """Registry of packages and their load state.

    Args:
        conditions: Registry that loaded packages add condition types to
        actions: Registry that loaded packages add action types to
    """

    def __init__(
        self,
        conditions: ConditionRegistry | None = None,
        actions: ActionRegistry | None = None,
    ):
        self.conditions = conditions
        self.actions = actions
        self._packages: dict[str, BasePackage] = {}
        self._loaded: list[str] = []
        self._namespace_index: list[tuple[str, str]] | None = None
        self._namespace_cache: dict[str, str | None] = {}

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, package: BasePackage) -> None:
        """Register a package descriptor. Re-registering a name replaces it."""
        self._packages[package.name] = package
        self._namespace_index = None
        self._namespace_cache.clear()

    def get_package(self, name: str) -> BasePackage | None:
        return self._packages.get(name)

    def has_packages(self) -> bool:
        return bool(self._packages)

    def get_registered_names(self) -> list[str]:
        return list(self._packages)

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, names: Iterable[str] | None = None) -> list[str]:
        """Load packages and their dependencies.

        Args:
            names: Packages to load. None loads every available package.

        Returns:
            Names of all loaded packages, in load order
        """
        if names is None:
            roots = [name for name, package in self._packages.items() if package.is_available()]
        else:
            roots = list(names)

        for root in roots:
            plan: list[str] = []
            if self._plan(root, [], plan):
                for name in plan:
                    self._commit(name)
            else:
                logger.warning("package_load_failed", package=root)

        return self.get_loaded_names()

    def _plan(self, name: str, in_progress: list[str], plan: list[str]) -> bool:
        """Depth-first dependency walk. Appends names to plan in load order."""
        if name in self._loaded or name in plan:
            return True

        package = self._packages.get(name)
        if package is None:
            logger.warning("package_not_registered", package=name)
            return False

        if not package.is_available():
            logger.warning("package_unavailable", package=name)
            return False

        if name in in_progress:
            logger.error("package_dependency_cycle", path=" -> ".join([*in_progress, name]))
            return False

        in_progress.append(name)
        for dependency in package.required_packages:
            if not self._plan(dependency, in_progress, plan):
                logger.warning("package_dependency_failed", package=name, dependency=dependency)
                in_progress.pop()
                return False
        in_progress.pop()

        plan.append(name)
        return True

    def _commit(self, name: str) -> None:
        package = self._packages[name]
        if self.conditions is not None and self.actions is not None:
            package.register_types(self.conditions, self.actions)
        self._loaded.append(name)
        logger.debug("package_loaded", package=name)

    def is_loaded(self, name: str) -> bool:
        return name in self._loaded

    def get_loaded_names(self) -> list[str]:
        return list(self._loaded)

    def get_loaded_packages(self) -> list[BasePackage]:
        return [self._packages[name] for name in self._loaded if name in self._packages]

    # =========================================================================
    # Namespaces
    # =========================================================================

    def map_namespace(self, qualified_name: str) -> str | None:
        """Name of the package owning a fully qualified name.

        The longest matching namespace prefix wins; between equally long
        prefixes the package registered first wins. Results, including
        misses, are cached until the next registration.
        """
        if qualified_name in self._namespace_cache:
            return self._namespace_cache[qualified_name]

        result = None
        for namespace, package_name in self._get_namespace_index():
            if qualified_name.startswith(namespace):
                result = package_name
                break

        self._namespace_cache[qualified_name] = result
        return result

    def _get_namespace_index(self) -> list[tuple[str, str]]:
        if self._namespace_index is None:
            entries = [
                (namespace, name)
                for name, package in self._packages.items()
                for namespace in package.namespaces
            ]
            # sorted() is stable, so equal lengths keep registration order
            self._namespace_index = sorted(entries, key=lambda entry: -len(entry[0]))
        return self._namespace_index

    # =========================================================================
    # Context and placeholders
    # =========================================================================

    def build_context(self) -> dict[str, Any]:
        """Merge static context from loaded packages; later-loaded keys win."""
        context: dict[str, Any] = {}
        for package in self.get_loaded_packages():
            context.update(package.build_context())
        return context

    def create_context(self) -> Context:
        """Fresh context seeded with package data and every loaded provider."""
        context = Context(self.build_context())
        for package in self.get_loaded_packages():
            package.register_context_providers(context)
        return context

    def placeholder_resolvers(self) -> dict[str, PlaceholderFn]:
        resolvers: dict[str, PlaceholderFn] = {}
        for package in self.get_loaded_packages():
            resolvers.update(package.placeholder_resolvers())
        return resolvers

    # =========================================================================
    # Rules
    # =========================================================================

    def register_rule(self, rule: Rule | Mapping[str, Any]) -> bool:
        """Register a rule with every package it requires.

        Returns:
            True if at least one registered package accepted the rule
        """
        rule = as_rule(rule)
        if not rule.required_packages:
            logger.warning("rule_without_packages", rule_id=rule.id)
            return False

        accepted = False
        for name in rule.required_packages:
            package = self._packages.get(name)
            if package is None:
                logger.warning("rule_package_not_registered", rule_id=rule.id, package=name)
                continue
            package.register_rule(rule)
            accepted = True
            if not self.is_loaded(name):
                logger.info("rule_package_not_loaded", rule_id=rule.id, package=name)
        return accepted

    def infer_required_packages(self, rule: Rule | Mapping[str, Any]) -> list[str]:
        """Packages owning the condition and action types a rule uses.

        Types are looked up in the manager's registries and mapped through
        the namespace index; types owned by no package are ignored.
        """
        rule = as_rule(rule)
        found: list[str] = []
        lookups = []
        if self.conditions is not None:
            lookups.extend((self.conditions, spec.type) for spec in rule.conditions)
        if self.actions is not None:
            lookups.extend((self.actions, spec.type) for spec in rule.actions)

        for registry, type_name in lookups:
            qualified = registry.qualified_name(type_name)
            package_name = self.map_namespace(qualified) if qualified else None
            if package_name and package_name not in found:
                found.append(package_name)
        return found

    def collect_rules(self, allowed: Iterable[str] | None = None) -> list[Rule]:
        """Rules from loaded packages, deduplicated by id and sorted by order.

        Args:
            allowed: Package names to collect from. None means all loaded.
        """
        names = self.get_loaded_names() if allowed is None else list(allowed)
        collected: dict[str, Rule] = {}
        for name in names:
            if not self.is_loaded(name):
                continue
            for rule in self._packages[name].get_rules():
                collected.setdefault(rule.id, rule)
        return sorted(collected.values(), key=lambda rule: rule.order)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def clear(self) -> None:
        """Unload everything and drop package rules; keep registrations."""
        for package in self._packages.values():
            package.clear()
        self._loaded = []

    def reset(self) -> None:
        """Drop all registrations, load state and cached namespace lookups."""
        self.clear()
        self._packages = {}
        self._namespace_index = None
        self._namespace_cache = {}
