from __future__ import annotations

import pytest

from formlogic.graph.dependencies import compile_rules
from formlogic.runtime.scheduler import TriggerEvent, TriggerKind, select_rules


def _rule(rule_id, reads, action_type, target, trigger):
    return {
        "id": rule_id,
        "name": rule_id,
        "trigger": trigger,
        "conditionGroups": [{
            "id": "g1",
            "conditions": [
                {"id": f"c{idx}", "fieldId": field_id, "operator": "is_not_empty"}
                for idx, field_id in enumerate(reads)
            ],
        }],
        "actions": [{"id": "a1", "type": action_type, "targetFieldId": target, "value": "x"}],
    }


def _graph():
    rules = [
        _rule("r1", ["a"], "set_value", "b", "on_change"),
        _rule("r2", ["b"], "set_value", "c", "immediate"),
        _rule("r3", ["b"], "show", "d", "on_submit"),
        _rule("r4", ["a"], "hide", "d", "on_blur"),
        _rule("r5", ["c"], "require", "d", "on_change"),
    ]
    return compile_rules(rules, ["a", "b", "c", "d"])


def test_graph_order():
    assert _graph().order == ["r1", "r2", "r3", "r4", "r5"]


def test_load_runs_immediate_rules():
    assert select_rules(_graph(), TriggerEvent.load()) == ["r2"]


def test_change_cascades_downstream():
    assert select_rules(_graph(), TriggerEvent.change("a")) == ["r1", "r2", "r3", "r5"]


def test_cascade_ignores_downstream_triggers():
    rules = [
        _rule("r1", ["a"], "set_value", "b", "on_change"),
        _rule("r2", ["b"], "jump_to", "c", "on_submit"),
        _rule("r3", ["b"], "show", "c", "on_blur"),
    ]
    graph = compile_rules(rules, ["a", "b", "c"])
    assert select_rules(graph, TriggerEvent.change("a")) == ["r1", "r2", "r3"]


def test_change_of_unread_field_selects_nothing():
    assert select_rules(_graph(), TriggerEvent.change("d")) == []


def test_change_seeds_only_on_change_rules():
    # r2 reads b but is an immediate rule, so it is not a seed
    assert select_rules(_graph(), TriggerEvent.change("b")) == []


def test_blur_does_not_cascade():
    assert select_rules(_graph(), TriggerEvent.blur("a")) == ["r4"]


def test_submit_runs_submit_rules():
    assert select_rules(_graph(), TriggerEvent.submit()) == ["r3"]


def test_event_field_requirements():
    with pytest.raises(ValueError):
        TriggerEvent(TriggerKind.CHANGE)
    with pytest.raises(ValueError):
        TriggerEvent(TriggerKind.SUBMIT, "a")
    assert str(TriggerEvent.change("a")) == "change(a)"
    assert str(TriggerEvent.load()) == "load"
