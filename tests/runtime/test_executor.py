from __future__ import annotations

import pandas as pd

from formlogic.config import EngineConfig
from formlogic.core.fields import FieldSpec, FormSchema
from formlogic.core.results import ReasonCode
from formlogic.graph.dependencies import compile_rules
from formlogic.runtime import executor
from formlogic.runtime.executor import default_state, evaluate, run_pass
from formlogic.runtime.scheduler import TriggerEvent


def _cond(field_id, operator, value=None, cond_id="c1"):
    return {"id": cond_id, "fieldId": field_id, "operator": operator, "value": value}


def _rule(rule_id, conditions=(), actions=(), trigger="on_change", group_op="AND"):
    groups = [{"id": "g1", "logicalOperator": group_op, "conditions": list(conditions)}] if conditions else []
    return {
        "id": rule_id,
        "name": rule_id,
        "trigger": trigger,
        "conditionGroups": groups,
        "actions": [dict(action, id=action.get("id", f"a{idx}")) for idx, action in enumerate(actions)],
    }


def _act(action_type, target, **extra):
    return dict({"type": action_type, "targetFieldId": target}, **extra)


def _country_graph():
    rules = [
        _rule("show_state", [_cond("country", "equals", "US")], [_act("show", "state")]),
        _rule("hide_state", [_cond("country", "not_equals", "US")], [_act("hide", "state")]),
    ]
    return compile_rules(rules, ["country", "state"])


# =============================================================================
# SCENARIOS
# =============================================================================

def test_show_hide_scenario():
    graph = _country_graph()

    us = evaluate(graph, TriggerEvent.change("country"), {"country": "US"})
    uk = evaluate(graph, TriggerEvent.change("country"), {"country": "UK"})

    assert us.derived_state["state"].visible is True
    assert uk.derived_state["state"].visible is False
    assert us.fired_rules == ["show_state"]
    assert uk.fired_rules == ["hide_state"]
    assert us.warnings == [] and uk.warnings == []


def test_calculation_scenario():
    schema = FormSchema.from_fields([
        FieldSpec(id="price", type="number"),
        FieldSpec(id="quantity", type="number"),
        FieldSpec(id="total", type="calculation"),
    ])
    rules = [_rule("total", actions=[_act("calculate", "total", calculateExpression="price * quantity")])]
    graph = compile_rules(rules, schema)

    full = evaluate(graph, TriggerEvent.change("price"), {"price": 10, "quantity": 3})
    assert full.derived_state["total"].value == 30
    assert full.value_changes == {"total": 30}
    assert full.warnings == []

    partial = evaluate(graph, TriggerEvent.change("price"), {"price": 10, "quantity": None})
    assert partial.derived_state["total"].value_set is False
    assert partial.derived_state["total"].value is None
    assert "total" not in partial.value_changes
    assert len(partial.warnings) == 1
    assert partial.warnings[0].reason == ReasonCode.EMPTY_OPERAND
    assert partial.warnings[0].action_id == "a0"


def test_navigation_override_scenario():
    schema = FormSchema.from_fields(["q1", "q2"], pages=["page1", "page2", "page3", "page4", "page5"])
    rules = [
        _rule("rule_a", [_cond("q1", "equals", "yes")], [_act("jump_to", "page3")], trigger="on_submit"),
        _rule("rule_b", [_cond("q2", "equals", "vip")], [_act("jump_to", "page5")], trigger="on_submit"),
    ]
    graph = compile_rules(rules, schema)

    result = evaluate(graph, TriggerEvent.submit(), {"q1": "yes", "q2": "vip"})

    assert result.fired_rules == ["rule_a", "rule_b"]
    assert result.navigation.target_id == "page5"
    assert result.navigation.kind == "page"
    assert result.navigation.rule_id == "rule_b"


def test_later_navigation_wins_across_kinds():
    schema = FormSchema.from_fields(["q1"], pages=["page1", "page2", "page3"])
    jump_then_skip = compile_rules(
        [
            _rule("a_jump", actions=[_act("jump_to", "page2")], trigger="on_submit"),
            _rule("b_skip", actions=[_act("skip_to", "page3")], trigger="on_submit"),
        ],
        schema,
    )
    skip_then_jump = compile_rules(
        [
            _rule("a_skip", actions=[_act("skip_to", "page3")], trigger="on_submit"),
            _rule("b_jump", actions=[_act("jump_to", "page2")], trigger="on_submit"),
        ],
        schema,
    )
    assert evaluate(jump_then_skip, TriggerEvent.submit(), {}).navigation.target_id == "page3"
    assert evaluate(skip_then_jump, TriggerEvent.submit(), {}).navigation.action_type == "jump_to"


def test_navigation_to_a_field_resolves_its_page():
    schema = FormSchema.from_fields(["q1", {"id": "p2", "type": "pagebreak"}, "q2"])
    graph = compile_rules([_rule("go", actions=[_act("skip_to", "q2")], trigger="on_submit")], schema)
    navigation = evaluate(graph, TriggerEvent.submit(), {}).navigation
    assert navigation.kind == "field"
    assert navigation.page_id == "p2"


def test_only_scheduled_rules_navigate():
    schema = FormSchema.from_fields(["q1"], pages=["page1", "page2"])
    graph = compile_rules(
        [_rule("go", [_cond("q1", "equals", "yes")], [_act("jump_to", "page2")], trigger="on_submit")],
        schema,
    )
    result = evaluate(graph, TriggerEvent.change("q1"), {"q1": "yes"})
    assert result.navigation is None
    assert result.fired_rules == []
    assert result.trace[0].matched is True
    assert result.trace[0].scheduled is False


# =============================================================================
# PROPERTIES
# =============================================================================

def test_idempotence():
    graph = _country_graph()
    snapshot = {"country": "US"}
    first = evaluate(graph, TriggerEvent.change("country"), snapshot)
    second = evaluate(graph, TriggerEvent.change("country"), snapshot)
    assert first.to_dict() == second.to_dict()
    assert snapshot == {"country": "US"}


def test_reversion_to_schema_default():
    graph = compile_rules(
        [_rule("hide_notes", [_cond("skip", "equals", "yes")], [_act("hide", "notes")])],
        ["skip", "notes"],
    )
    hidden = evaluate(graph, TriggerEvent.change("skip"), {"skip": "yes"})
    restored = evaluate(graph, TriggerEvent.change("skip"), {"skip": "no"})
    assert hidden.derived_state["notes"].visible is False
    assert restored.derived_state["notes"].visible is True


def test_hide_wins_over_show_in_any_order():
    for show_id, hide_id in (("a_show", "b_hide"), ("b_show", "a_hide")):
        graph = compile_rules(
            [_rule(show_id, actions=[_act("show", "x")]), _rule(hide_id, actions=[_act("hide", "x")])],
            ["x"],
        )
        assert run_pass(graph, {}).derived_state["x"].visible is False


def test_disable_wins_over_enable_in_any_order():
    for enable_id, disable_id in (("a_enable", "b_disable"), ("b_enable", "a_disable")):
        graph = compile_rules(
            [_rule(enable_id, actions=[_act("enable", "x")]), _rule(disable_id, actions=[_act("disable", "x")])],
            ["x"],
        )
        assert run_pass(graph, {}).derived_state["x"].enabled is False


def test_required_is_last_writer_wins():
    graph = compile_rules(
        [_rule("a_require", actions=[_act("require", "x")]), _rule("b_optional", actions=[_act("optional", "x")])],
        [FieldSpec(id="x", required=False)],
    )
    assert run_pass(graph, {}).derived_state["x"].required is False


def test_set_value_conflict_is_last_writer_wins():
    graph = compile_rules(
        [
            _rule("a_first", actions=[_act("set_value", "x", value="first")]),
            _rule("b_second", actions=[_act("set_value", "x", value="second")]),
        ],
        ["x"],
    )
    assert run_pass(graph, {}).value_changes == {"x": "second"}


# =============================================================================
# PASS MECHANICS
# =============================================================================

def test_defaults_come_from_the_schema():
    schema = FormSchema.from_fields([
        FieldSpec(id="name", required=True),
        FieldSpec(id="token", type="hidden", visible=False),
    ])
    state = default_state(schema)
    assert state["name"].required is True
    assert state["token"].visible is False
    assert state["name"].enabled is True


def test_values_written_earlier_feed_later_conditions():
    schema = FormSchema.from_fields(["a", "b", FieldSpec(id="c", visible=False)])
    rules = [
        _rule("reveal", [_cond("b", "equals", "set")], [_act("show", "c")]),
        _rule("writer", [_cond("a", "equals", "go")], [_act("set_value", "b", value="set")]),
    ]
    graph = compile_rules(rules, schema)
    assert graph.order == ["writer", "reveal"]

    result = evaluate(graph, TriggerEvent.change("a"), {"a": "go"})
    assert result.derived_state["c"].visible is True
    assert result.fired_rules == ["writer", "reveal"]


def test_calculation_uses_configured_rounding():
    schema = FormSchema.from_fields([FieldSpec(id="a", type="number"), FieldSpec(id="avg", type="number")])
    rules = [_rule("third", actions=[_act("calculate", "avg", calculateExpression="a / 3")])]

    rounded = compile_rules(rules, schema)
    exact = compile_rules(rules, schema, EngineConfig(calculation_decimal_places=None))

    assert run_pass(rounded, {"a": 10}).value_changes["avg"] == 3.33
    assert run_pass(exact, {"a": 10}).value_changes["avg"] == 10 / 3


def test_division_by_zero_is_a_warning():
    schema = FormSchema.from_fields(["a", "b", "ratio"])
    graph = compile_rules([_rule("ratio", actions=[_act("calculate", "ratio", calculateExpression="a / b")])], schema)
    result = run_pass(graph, {"a": 1, "b": 0})
    assert result.derived_state["ratio"].value_set is False
    assert [w.reason for w in result.warnings] == [ReasonCode.DIVISION_BY_ZERO]


def test_runtime_type_mismatch_is_a_warning():
    graph = compile_rules(
        [_rule("big", [_cond("name", "greater_than", "M")], [_act("hide", "other")])],
        ["name", "other"],
    )
    result = evaluate(graph, TriggerEvent.change("name"), {"name": "Zed"})
    assert result.derived_state["other"].visible is True
    assert len(result.warnings) == 1
    warning = result.warnings[0]
    assert warning.rule_id == "big"
    assert warning.reason == ReasonCode.TYPE_MISMATCH
    assert warning.condition_id == "c1"


def test_untouched_fields_do_not_warn():
    result = evaluate(_country_graph(), TriggerEvent.load(), {})
    assert result.warnings == []
    assert result.derived_state["state"].visible is True


def test_failing_rule_becomes_internal_error_warning(monkeypatch):
    graph = compile_rules(
        [
            _rule("bad", actions=[_act("hide", "x")]),
            _rule("good", actions=[_act("disable", "x")]),
        ],
        ["x"],
    )
    original = executor.evaluate_rule_conditions

    def _explode(rule, values, schema):
        if rule.id == "bad":
            raise RuntimeError("boom")
        return original(rule, values, schema)

    monkeypatch.setattr(executor, "evaluate_rule_conditions", _explode)
    result = run_pass(graph, {}, ["bad", "good"])

    assert result.derived_state["x"].visible is True
    assert result.derived_state["x"].enabled is False
    assert result.fired_rules == ["good"]
    assert [(w.rule_id, w.reason) for w in result.warnings] == [("bad", ReasonCode.INTERNAL_ERROR)]


def test_trace_covers_every_rule():
    result = evaluate(_country_graph(), TriggerEvent.change("country"), {"country": "US"})
    assert [t.rule_id for t in result.trace] == ["hide_state", "show_state"]
    assert result.trace[1].applied_actions == ["a0"]
    assert result.trace[1].summary() == "show_state: c1=TRUE -> FIRED"
    assert result.trace[0].summary() == "hide_state: c1=FALSE -> SKIPPED"


def test_empty_snapshot_is_accepted():
    result = evaluate(_country_graph(), TriggerEvent.load(), None)
    assert set(result.derived_state) == {"country", "state"}
    assert result.visible_fields() == ["country", "state"]


def test_failing_calculation_unsets_an_earlier_value():
    schema = FormSchema.from_fields(["q", FieldSpec(id="total", type="number")])
    graph = compile_rules(
        [
            _rule("a_set", actions=[_act("set_value", "total", value=5)]),
            _rule("b_calc", actions=[_act("calculate", "total", calculateExpression="q * 2")]),
        ],
        schema,
    )
    assert graph.order == ["a_set", "b_calc"]

    result = run_pass(graph, {"q": None})

    assert result.derived_state["total"].value_set is False
    assert result.derived_state["total"].value is None
    assert result.value_changes == {}
    assert [w.reason for w in result.warnings] == [ReasonCode.EMPTY_OPERAND]


def test_rule_failing_mid_actions_is_rolled_back(monkeypatch):
    schema = FormSchema.from_fields([FieldSpec(id="x", visible=False), "y"])
    graph = compile_rules(
        [_rule("partial", actions=[_act("show", "x"), _act("set_value", "y", value="v")])],
        schema,
    )

    def _explode(self, target, value):
        raise RuntimeError("write failed")

    monkeypatch.setattr(executor._Pass, "_write_value", _explode)
    result = run_pass(graph, {}, ["partial"])

    assert result.derived_state["x"].visible is False
    assert result.derived_state["y"].value_set is False
    assert result.fired_rules == []
    assert result.trace[0].matched is False
    assert result.trace[0].applied_actions == []
    assert [(w.rule_id, w.reason) for w in result.warnings] == [("partial", ReasonCode.INTERNAL_ERROR)]


def test_dataframe_row_snapshot():
    graph = compile_rules(
        [_rule("reveal", [_cond("a", "equals", "x")], [_act("hide", "b")])],
        ["a", "b"],
    )
    row = pd.DataFrame([{"a": "x", "b": None}]).iloc[0]

    result = evaluate(graph, TriggerEvent.change("a"), row)

    assert result.derived_state["b"].visible is False
    assert result.fired_rules == ["reveal"]
    assert result.warnings == []
