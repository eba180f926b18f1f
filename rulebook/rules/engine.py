"""Rule evaluation engine.

One call to execute() is one evaluation pass: rules are walked in the given
order, each rule's conditions are reduced by its match type, and the actions
of matching rules run in declared order. A pass never raises for a bad rule,
condition or action; failures are logged, counted and the walk continues.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from rulebook.context import Context
from rulebook.core.logging import ErrorAggregator, get_logger
from rulebook.placeholders import PlaceholderFn, PlaceholderResolver
from rulebook.rules.registry import (
    ActionRegistry,
    ConditionRegistry,
    default_action_registry,
    default_condition_registry,
)
from rulebook.rules.schemas import ExecutionResult, MatchType, Rule, as_rule

if TYPE_CHECKING:
    from rulebook.packages.manager import PackageManager

logger = get_logger(__name__)


class RuleEngine:
    """Evaluates rule lists against a context.

    Example:
        engine = RuleEngine()
        result = engine.execute(
            [{"id": "r1", "actions": [{"type": "set_cache", "enabled": False}]}],
            Context(),
        )
        result.actions_executed  # 1
    """

    def __init__(
        self,
        conditions: ConditionRegistry | None = None,
        actions: ActionRegistry | None = None,
        packages: PackageManager | None = None,
        placeholders: Mapping[str, PlaceholderFn] | None = None,
    ):
        """
        Args:
            conditions: Condition type registry (built-ins when omitted)
            actions: Action type registry (built-ins when omitted)
            packages: Package manager supplying loaded packages and resolvers
            placeholders: Extra placeholder resolvers, applied over package ones
        """
        self.conditions = conditions if conditions is not None else default_condition_registry()
        self.actions = actions if actions is not None else default_action_registry()
        self.packages = packages
        self.placeholders: dict[str, PlaceholderFn] = dict(placeholders or {})

    def execute(
        self,
        rules: Iterable[Rule | Mapping[str, Any]],
        context: Context | Mapping[str, Any] | None = None,
        allowed_packages: Iterable[str] | None = None,
    ) -> ExecutionResult:
        """Run one evaluation pass.

        Args:
            rules: Rules in execution order; dicts are validated into Rule
            context: Context to evaluate against and mutate
            allowed_packages: Package names rules may require. None means
                every package loaded in the package manager.

        Returns:
            ExecutionResult with pass statistics and a context snapshot
        """
        context = self._as_context(context)
        allowed = self._allowed_packages(allowed_packages)
        resolver = self.build_resolver(context)
        errors = ErrorAggregator(logger)
        locked: set[str] = set()

        processed = skipped = matched = executed = 0

        for raw_rule in rules:
            processed += 1
            try:
                rule = as_rule(raw_rule)
            except ValidationError as exc:
                errors.add("invalid_rule", str(exc).splitlines()[0])
                skipped += 1
                continue

            if not rule.enabled:
                logger.debug("rule_skipped", rule_id=rule.id, reason="disabled")
                skipped += 1
                continue

            missing = [name for name in rule.required_packages if name not in allowed]
            if missing:
                logger.debug("rule_skipped", rule_id=rule.id, reason="packages", missing=missing)
                skipped += 1
                continue

            if not self.conditions_match(rule, context, resolver, errors):
                continue

            matched += 1
            executed += self.run_actions(rule, context, resolver, errors, locked)

        errors.flush()
        return ExecutionResult(
            rules_processed=processed,
            rules_skipped=skipped,
            rules_matched=matched,
            actions_executed=executed,
            context=context.to_dict(),
        )

    # -------------------------------------------------------------------------
    # Conditions
    # -------------------------------------------------------------------------

    def conditions_match(
        self,
        rule: Rule,
        context: Context,
        resolver: PlaceholderResolver | None = None,
        errors: ErrorAggregator | None = None,
    ) -> bool:
        """Reduce a rule's conditions by its match type.

        Empty condition lists: all -> True, any -> False, none -> True.
        """
        match_type = rule.match_type

        for spec in rule.conditions:
            result = self._evaluate_condition(rule, spec, context, resolver, errors)
            if match_type == MatchType.ALL and not result:
                return False
            if match_type == MatchType.ANY and result:
                return True
            if match_type == MatchType.NONE and result:
                return False

        return match_type != MatchType.ANY

    def _evaluate_condition(self, rule, spec, context, resolver, errors) -> bool:
        try:
            condition = self.conditions.create(spec, context, resolver)
            return bool(condition.matches(context))
        except Exception as exc:
            logger.error(
                "condition_failed",
                rule_id=rule.id,
                type=spec.type,
                error=str(exc),
                exc_info=True,
            )
            if errors is not None:
                errors.add("condition_failed", f"{spec.type}: {exc}")
            return False

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def run_actions(
        self,
        rule: Rule,
        context: Context,
        resolver: PlaceholderResolver | None,
        errors: ErrorAggregator | None,
        locked: set[str],
    ) -> int:
        """Execute a matched rule's actions in order.

        Returns:
            Number of actions that executed successfully
        """
        executed = 0
        for spec in rule.actions:
            if spec.type in locked:
                logger.debug("action_locked", rule_id=rule.id, type=spec.type)
                continue

            try:
                action = self.actions.create(spec, context, resolver)
                if action is None:
                    continue
                action.execute(context)
            except Exception as exc:
                logger.error(
                    "action_failed",
                    rule_id=rule.id,
                    type=spec.type,
                    error=str(exc),
                    exc_info=True,
                )
                if errors is not None:
                    errors.add("action_failed", f"{spec.type}: {exc}")
                continue

            executed += 1
            if spec.locked:
                locked.add(spec.type)

        return executed

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def build_resolver(self, context: Context) -> PlaceholderResolver:
        """Placeholder resolver for one pass: package resolvers, then engine extras."""
        resolvers: dict[str, PlaceholderFn] = {}
        if self.packages is not None:
            resolvers.update(self.packages.placeholder_resolvers())
        resolvers.update(self.placeholders)
        return PlaceholderResolver(context, resolvers)

    def _allowed_packages(self, allowed_packages: Iterable[str] | None) -> set[str]:
        if isinstance(allowed_packages, str):
            return {allowed_packages}
        if allowed_packages is not None:
            return set(allowed_packages)
        if self.packages is not None:
            return set(self.packages.get_loaded_names())
        return set()

    def _as_context(self, context: Context | Mapping[str, Any] | None) -> Context:
        if isinstance(context, Context):
            return context
        if context is None and self.packages is not None:
            return self.packages.create_context()
        return Context(context)
