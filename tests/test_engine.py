"""Tests for the rule evaluation engine."""

from typing import Any

import pytest

from rulebook.context import Context
from rulebook.packages import PackageManager
from rulebook.rules import (
    ActionRegistry,
    BaseAction,
    BaseCondition,
    ConditionRegistry,
    ConditionSpec,
    ExecutionResult,
    Rule,
    RuleEngine,
)


def rule(rule_id: str, **fields: Any) -> dict[str, Any]:
    return {"id": rule_id, **fields}


class TestMatchTypes:
    @pytest.mark.parametrize(
        "match_type, expected",
        [("all", 1), ("any", 0), ("none", 1)],
    )
    def test_empty_condition_lists(self, engine: RuleEngine, match_type: str, expected: int):
        result = engine.execute([rule("r", match_type=match_type)], Context())
        assert result.rules_matched == expected

    def test_all_requires_every_condition(self, engine: RuleEngine):
        context = Context({"user": {"role": "editor", "active": True}})
        conditions = [
            {"type": "context", "name": "user.role", "value": "editor"},
            {"type": "context", "name": "user.active", "value": True, "operator": "IS"},
        ]
        assert engine.execute([rule("r", conditions=conditions)], context).rules_matched == 1

        conditions[0]["value"] = "admin"
        assert engine.execute([rule("r", conditions=conditions)], context).rules_matched == 0

    def test_any_needs_one_condition(self, engine: RuleEngine):
        context = Context({"user": {"role": "editor"}})
        conditions = [
            {"type": "context", "name": "user.role", "value": "admin"},
            {"type": "context", "name": "user.role", "value": "editor"},
        ]
        result = engine.execute([rule("r", match_type="any", conditions=conditions)], context)
        assert result.rules_matched == 1

    def test_none_requires_no_condition(self, engine: RuleEngine):
        context = Context({"user": {"role": "editor"}})
        conditions = [{"type": "context", "name": "user.role", "value": "admin"}]
        result = engine.execute([rule("r", match_type="none", conditions=conditions)], context)
        assert result.rules_matched == 1

        conditions = [{"type": "context", "name": "user.role", "value": "editor"}]
        result = engine.execute([rule("r", match_type="none", conditions=conditions)], context)
        assert result.rules_matched == 0

    def test_unknown_condition_type_never_matches(self, engine: RuleEngine):
        result = engine.execute(
            [rule("r", conditions=[{"type": "does_not_exist"}])],
            Context(),
        )
        assert result.rules_matched == 0

    def test_condition_error_counts_as_false(self, engine: RuleEngine):
        def explode(spec, context):
            raise ValueError("boom")

        engine.conditions.register("explode", explode)
        result = engine.execute(
            [
                rule("r1", match_type="any", conditions=[{"type": "explode"}]),
                rule("r2"),
            ],
            Context(),
        )
        assert result.rules_matched == 1
        assert result.rules_processed == 2


class TestListValues:
    def test_list_with_match_type_compares_each(self, engine: RuleEngine):
        context = Context({"request": {"method": "POST"}})
        condition = {
            "type": "context",
            "name": "request.method",
            "value": ["GET", "POST"],
            "match_type": "all",
        }
        assert engine.execute([rule("r", conditions=[condition])], context).rules_matched == 0

        condition["match_type"] = "any"
        assert engine.execute([rule("r", conditions=[condition])], context).rules_matched == 1

    def test_list_with_in_operator_uses_membership(self, engine: RuleEngine):
        context = Context({"request": {"method": "POST"}})
        condition = {
            "type": "context",
            "name": "request.method",
            "value": ["GET", "HEAD"],
            "operator": "NOT IN",
        }
        assert engine.execute([rule("r", conditions=[condition])], context).rules_matched == 1

    def test_list_without_match_type_defaults_to_any(self, engine: RuleEngine):
        context = Context({"path": "/shop/cart"})
        condition = {
            "type": "context",
            "name": "path",
            "value": ["/blog*", "/shop*"],
            "operator": "LIKE",
        }
        assert engine.execute([rule("r", conditions=[condition])], context).rules_matched == 1


class TestSkipping:
    def test_disabled_rule_is_skipped(self, engine: RuleEngine, calls: list):
        engine.actions.register("record", lambda spec, context: calls.append("ran"))
        result = engine.execute(
            [rule("r", enabled=False, actions=[{"type": "record"}])],
            Context(),
        )
        assert result.rules_processed == 1
        assert result.rules_skipped == 1
        assert result.rules_matched == 0
        assert calls == []

    def test_required_package_not_allowed(self, engine: RuleEngine):
        rules = [
            rule("needs-http", metadata={"required_packages": ["http"]}),
            rule("core"),
        ]
        result = engine.execute(rules, Context(), allowed_packages=["wordpress"])
        assert result.rules_skipped == 1
        assert result.rules_matched == 1

        result = engine.execute(rules, Context(), allowed_packages=["http"])
        assert result.rules_skipped == 0
        assert result.rules_matched == 2

    def test_allowed_packages_as_single_name(self, engine: RuleEngine):
        result = engine.execute(
            [rule("needs-http", metadata={"required_packages": ["http"]})],
            Context(),
            allowed_packages="http",
        )
        assert result.rules_matched == 1

    def test_no_manager_means_no_packages(self, engine: RuleEngine):
        result = engine.execute(
            [rule("r", metadata={"required_packages": ["http"]})],
            Context(),
        )
        assert result.rules_skipped == 1

    def test_default_allow_list_is_loaded_packages(
        self,
        conditions: ConditionRegistry,
        actions: ActionRegistry,
        package_manager: PackageManager,
        package_factory,
    ):
        package_manager.register(package_factory("shop"))
        package_manager.register(package_factory("blog"))
        package_manager.load(["shop"])
        engine = RuleEngine(conditions, actions, package_manager)

        result = engine.execute(
            [
                rule("a", metadata={"required_packages": ["shop"]}),
                rule("b", metadata={"required_packages": ["blog"]}),
            ],
            Context(),
        )
        assert result.rules_matched == 1
        assert result.rules_skipped == 1

    def test_invalid_rule_is_skipped(self, engine: RuleEngine):
        result = engine.execute([{"title": "no id"}, rule("ok")], Context())
        assert result.rules_processed == 2
        assert result.rules_skipped == 1
        assert result.rules_matched == 1

    def test_non_string_operator_defaults_to_equals(self, engine: RuleEngine):
        result = engine.execute(
            [rule("r", conditions=[{"type": "context", "name": "x", "value": "1", "operator": 5}])],
            Context({"x": 1}),
        )
        assert result.rules_skipped == 0
        assert result.rules_matched == 1

    def test_non_string_match_type_defaults_to_all(self, engine: RuleEngine):
        result = engine.execute(
            [rule(
                "r",
                match_type=3,
                conditions=[
                    {"type": "context", "name": "x", "value": 1},
                    {"type": "context", "name": "y", "value": [1, 2], "match_type": ["any"]},
                ],
            )],
            Context({"x": 1, "y": 2}),
        )
        assert result.rules_skipped == 0
        assert result.rules_matched == 1


class TestActions:
    def test_actions_run_in_order(self, engine: RuleEngine, calls: list):
        engine.actions.register("record", lambda spec, context: calls.append(spec.get("label")))
        result = engine.execute(
            [
                rule("r1", actions=[{"type": "record", "label": "a"}, {"type": "record", "label": "b"}]),
                rule("r2", actions=[{"type": "record", "label": "c"}]),
            ],
            Context(),
        )
        assert calls == ["a", "b", "c"]
        assert result.actions_executed == 3

    def test_unknown_action_type_skipped(self, engine: RuleEngine):
        result = engine.execute(
            [rule("r", actions=[{"type": "nope"}, {"type": "set_context", "path": "x", "value": 1}])],
            Context(),
        )
        assert result.actions_executed == 1
        assert result.context["x"] == 1

    def test_action_error_does_not_abort(self, engine: RuleEngine, calls: list):
        def broken(spec, context):
            raise RuntimeError("write failed")

        engine.actions.register("broken", broken)
        engine.actions.register("record", lambda spec, context: calls.append("after"))

        result = engine.execute(
            [
                rule("r1", actions=[{"type": "broken"}, {"type": "record"}]),
                rule("r2", actions=[{"type": "record"}]),
            ],
            Context(),
        )
        assert calls == ["after", "after"]
        assert result.actions_executed == 2

    def test_action_constructor_error_does_not_abort(self, engine: RuleEngine, calls: list):
        class Misconfigured(BaseAction):
            def __init__(self, spec, context, resolver=None):
                raise RuntimeError("bad config")

            def execute(self, context: Context) -> None:
                calls.append("misconfigured")

        engine.actions.register_class("misconfigured", Misconfigured)
        engine.actions.register("record", lambda spec, context: calls.append("after"))

        result = engine.execute(
            [
                rule("r1", actions=[{"type": "misconfigured"}, {"type": "record"}]),
                rule("r2", actions=[{"type": "record"}]),
            ],
            Context(),
        )
        assert calls == ["after", "after"]
        assert result.rules_matched == 2
        assert result.actions_executed == 2

    def test_base_classes_are_abstract(self):
        with pytest.raises(TypeError):
            BaseAction({"type": "x"}, Context())
        with pytest.raises(TypeError):
            BaseCondition({"type": "x"}, Context())

    def test_callback_receives_spec_and_context(self, engine: RuleEngine):
        seen = {}

        def capture(spec, context):
            seen["ttl"] = spec.get("ttl")
            seen["context"] = context

        engine.actions.register("capture", capture)
        context = Context()
        engine.execute([rule("r", actions=[{"type": "capture", "ttl": 30}])], context)
        assert seen == {"ttl": 30, "context": context}

    def test_placeholders_resolved_in_action_args(self, engine: RuleEngine):
        context = Context({"user": {"name": "ada"}})
        engine.execute(
            [rule("r", actions=[{"type": "set_context", "path": "greeting", "value": "hi {user.name}"}])],
            context,
        )
        assert context.get("greeting") == "hi ada"

    def test_placeholders_resolved_in_condition_values(self, engine: RuleEngine):
        context = Context({"user": {"name": "ada", "owner": "ada"}})
        condition = {"type": "context", "name": "user.name", "value": "{user.owner}"}
        assert engine.execute([rule("r", conditions=[condition])], context).rules_matched == 1

    def test_engine_placeholder_resolver(self, conditions, actions):
        engine = RuleEngine(conditions, actions, placeholders={"env": lambda ctx, parts: "prod"})
        context = Context()
        engine.execute(
            [rule("r", actions=[{"type": "set_context", "path": "where", "value": "{env.name}"}])],
            context,
        )
        assert context.get("where") == "prod"


class TestActionLocking:
    def test_locked_action_blocks_later_same_type(self, engine: RuleEngine):
        context = Context()
        rules = [
            rule("r1", match_type="all", actions=[{"type": "set_cache", "enabled": False, "locked": True}]),
            rule("r2", match_type="all", actions=[{"type": "set_cache", "enabled": True}]),
        ]
        result = engine.execute(rules, context, None)

        assert context.get("cache.enabled") is False
        assert result.actions_executed == 1

    def test_lock_is_per_type(self, engine: RuleEngine):
        context = Context()
        rules = [
            rule("r1", actions=[{"type": "set_cache", "enabled": False, "locked": True}]),
            rule("r2", actions=[
                {"type": "set_cache", "enabled": True},
                {"type": "set_context", "path": "later", "value": "yes"},
            ]),
        ]
        result = engine.execute(rules, context)
        assert result.actions_executed == 2
        assert context.get("later") == "yes"

    def test_locks_reset_between_passes(self, engine: RuleEngine, calls: list):
        engine.actions.register("track", lambda spec, context: calls.append(spec.get("rule")))
        rules = [
            rule("a", actions=[{"type": "track", "rule": "a", "locked": True}]),
            rule("b", actions=[{"type": "track", "rule": "b"}]),
        ]

        engine.execute(rules, Context())
        assert calls == ["a"]

        engine.execute(rules, Context())
        assert calls == ["a", "a"]

    def test_failed_locked_action_does_not_lock(self, engine: RuleEngine, calls: list):
        def flaky(spec, context):
            if spec.get("fail"):
                raise RuntimeError("nope")
            calls.append("ok")

        engine.actions.register("flaky", flaky)
        result = engine.execute(
            [
                rule("r1", actions=[{"type": "flaky", "fail": True, "locked": True}]),
                rule("r2", actions=[{"type": "flaky"}]),
            ],
            Context(),
        )
        assert calls == ["ok"]
        assert result.actions_executed == 1

    def test_lock_applies_within_same_rule(self, engine: RuleEngine, calls: list):
        engine.actions.register("track", lambda spec, context: calls.append(spec.get("n")))
        engine.execute(
            [rule("r", actions=[{"type": "track", "n": 1, "locked": True}, {"type": "track", "n": 2}])],
            Context(),
        )
        assert calls == [1]


class TestStatistics:
    def test_counts_accumulate_per_call(self, engine: RuleEngine):
        rules = [
            rule("a", actions=[{"type": "set_context", "path": "a", "value": 1}]),
            rule("b", enabled=False),
            rule("c", match_type="any"),
        ]
        first = engine.execute(rules, Context())
        second = engine.execute(rules, Context())

        for result in (first, second):
            assert isinstance(result, ExecutionResult)
            assert result.rules_processed == 3
            assert result.rules_skipped == 1
            assert result.rules_matched == 1
            assert result.actions_executed == 1
            assert result.error is None

    def test_context_snapshot(self, engine: RuleEngine):
        result = engine.execute(
            [rule("a", actions=[{"type": "set_cache", "enabled": "no", "ttl": "120"}])],
            {"site": "main"},
        )
        assert result.context == {"site": "main", "cache": {"enabled": False, "ttl": 120}}

    def test_rules_are_not_reordered(self, engine: RuleEngine, calls: list):
        engine.actions.register("track", lambda spec, context: calls.append(spec.get("id")))
        engine.execute(
            [
                Rule(id="late", order=50, actions=[{"type": "track", "id": "late"}]),
                Rule(id="early", order=1, actions=[{"type": "track", "id": "early"}]),
            ],
            Context(),
        )
        assert calls == ["late", "early"]

    def test_conditions_match_helper(self, engine: RuleEngine):
        spec = ConditionSpec(type="context", name="n", value=1)
        assert engine.conditions_match(Rule(id="r", conditions=[spec]), Context({"n": 1}))
