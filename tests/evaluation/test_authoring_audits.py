from __future__ import annotations

from formlogic.config import EngineConfig
from formlogic.core.fields import FieldSpec, FormSchema
from formlogic.evaluation.audits import (
    actionless_rules_gate,
    competing_value_writers_gate,
    navigation_targets_gate,
    run_audits,
    unreachable_required_fields_gate,
)
from formlogic.graph.dependencies import compile_rules


def _rule(rule_id, actions, reads=("a",)):
    return {
        "id": rule_id,
        "name": rule_id,
        "conditionGroups": [{
            "id": "g1",
            "conditions": [
                {"id": f"c{idx}", "fieldId": field_id, "operator": "is_not_empty"}
                for idx, field_id in enumerate(reads)
            ],
        }],
        "actions": [dict(action, id=f"a{idx}") for idx, action in enumerate(actions)],
    }


SCHEMA = FormSchema.from_fields([
    FieldSpec(id="a"),
    FieldSpec(id="b"),
    FieldSpec(id="total", type="number"),
    FieldSpec(id="secret", required=True, visible=False),
])


def test_clean_rule_set_passes_every_gate():
    graph = compile_rules(
        [
            _rule("calc", [{"type": "calculate", "targetFieldId": "total", "calculateExpression": "a + b"}]),
            _rule("reveal", [{"type": "show", "targetFieldId": "secret"}]),
        ],
        SCHEMA,
    )
    results = run_audits(graph)
    assert [r.gate_id for r in results] == [
        "formlogic_actionless_rules",
        "formlogic_competing_value_writers",
        "formlogic_unreachable_required_fields",
        "formlogic_navigation_targets",
    ]
    assert all(r.passed for r in results)


def test_actionless_rules_are_flagged():
    graph = compile_rules(
        [_rule("noop", []), _rule("reveal", [{"type": "show", "targetFieldId": "secret"}])],
        SCHEMA,
    )
    result = actionless_rules_gate(graph)
    assert not result.passed
    assert result.total == 2 and result.succeeded == 1
    assert result.success_rate == 0.5
    assert "noop" in result.details


def test_competing_value_writers_are_flagged():
    graph = compile_rules(
        [
            _rule("first", [{"type": "set_value", "targetFieldId": "total", "value": 1}]),
            _rule("second", [{"type": "calculate", "targetFieldId": "total", "calculateExpression": "b * 2"}]),
        ],
        SCHEMA,
    )
    result = competing_value_writers_gate(graph)
    assert not result.passed
    assert result.details == "total<-first,second"


def test_no_value_writers_is_vacuously_fine():
    graph = compile_rules([_rule("reveal", [{"type": "show", "targetFieldId": "secret"}])], SCHEMA)
    result = competing_value_writers_gate(graph)
    assert result.passed
    assert result.total == 0
    assert result.success_rate == 1.0


def test_required_hidden_field_without_show_rule():
    graph = compile_rules([_rule("hide_b", [{"type": "hide", "targetFieldId": "b"}])], SCHEMA)
    result = unreachable_required_fields_gate(graph)
    assert not result.passed
    assert "secret" in result.details


def test_unvalidated_navigation_targets_are_reported():
    graph = compile_rules(
        [_rule("go", [{"type": "jump_to", "targetFieldId": "page9"}])],
        SCHEMA,
        EngineConfig(validate_navigation_targets=False),
    )
    result = navigation_targets_gate(graph)
    assert not result.passed
    assert result.details == "dangling=['go->page9']"
