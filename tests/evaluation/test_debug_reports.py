from __future__ import annotations

from formlogic.core.fields import FieldSpec, FormSchema
from formlogic.evaluation.audits import run_audits
from formlogic.evaluation.reports import (
    AUDIT_COLUMNS,
    WARNING_COLUMNS,
    audit_frame,
    dependency_frame,
    rules_frame,
    state_frame,
    trace_frame,
    warnings_frame,
)
from formlogic.graph.dependencies import compile_rules
from formlogic.runtime.executor import evaluate
from formlogic.runtime.scheduler import TriggerEvent

SCHEMA = FormSchema.from_fields([
    FieldSpec(id="price", type="number"),
    FieldSpec(id="qty", type="number"),
    FieldSpec(id="total", type="number"),
    FieldSpec(id="discount", visible=False),
])

RULES = [
    {
        "id": "calc_total",
        "name": "Total",
        "actions": [{"id": "a1", "type": "calculate", "targetFieldId": "total", "calculateExpression": "price * qty"}],
    },
    {
        "id": "bulk_discount",
        "name": "Bulk discount",
        "conditionGroups": [{
            "id": "g1",
            "conditions": [{"id": "c1", "fieldId": "total", "operator": "greater_than", "value": 100}],
        }],
        "actions": [{"id": "a1", "type": "show", "targetFieldId": "discount"}],
    },
]


def test_rules_frame():
    df = rules_frame(compile_rules(RULES, SCHEMA))
    assert list(df["rule_id"]) == ["calc_total", "bulk_discount"]
    row = df.set_index("rule_id").loc["calc_total"]
    assert row["reads"] == "price,qty"
    assert row["writes"] == "total"
    assert row["downstream"] == 1
    assert df.set_index("rule_id").loc["bulk_discount", "upstream"] == 1


def test_dependency_frame():
    df = dependency_frame(compile_rules(RULES, SCHEMA))
    assert df.to_dict("records") == [{"from_rule": "calc_total", "to_rule": "bulk_discount", "fields": "total"}]


def test_evaluation_frames():
    graph = compile_rules(RULES, SCHEMA)
    result = evaluate(graph, TriggerEvent.change("qty"), {"price": 30, "qty": 4})

    states = state_frame(result).set_index("field_id")
    assert states.loc["total", "value"] == 120
    assert bool(states.loc["discount", "visible"]) is True

    trace = trace_frame(result)
    assert list(trace["rule_id"]) == ["calc_total", "bulk_discount"]
    assert trace["matched"].all()
    assert trace["scheduled"].all()


def test_empty_frames_keep_their_columns():
    graph = compile_rules(RULES, SCHEMA)
    result = evaluate(graph, TriggerEvent.load(), {"price": 1, "qty": 1})
    df = warnings_frame(result)
    assert df.empty
    assert list(df.columns) == WARNING_COLUMNS
    assert list(audit_frame([]).columns) == AUDIT_COLUMNS


def test_warnings_and_audits_frames():
    graph = compile_rules(RULES, SCHEMA)
    result = evaluate(graph, TriggerEvent.change("price"), {"price": 5})
    warnings = warnings_frame(result)
    assert list(warnings["reason"]) == ["EMPTY_OPERAND"]
    assert list(warnings["action_id"]) == ["a1"]

    audits = audit_frame(run_audits(graph))
    assert len(audits) == 4
    assert audits["passed"].all()
