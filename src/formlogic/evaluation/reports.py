"""
Tabular reports for the form author's debugging view.

Every frame has a fixed column set, so an empty rule set or an evaluation
without warnings still yields a frame with the expected columns.
"""

from __future__ import annotations

from typing import List

import pandas as pd

from formlogic.core.results import EvaluationResult
from formlogic.evaluation.audits import AuditResult
from formlogic.graph.dependencies import CompiledGraph

RULE_COLUMNS = [
    "order", "rule_id", "name", "trigger", "conditions", "actions",
    "reads", "writes", "upstream", "downstream",
]
EDGE_COLUMNS = ["from_rule", "to_rule", "fields"]
STATE_COLUMNS = ["field_id", "visible", "required", "enabled", "value_set", "value"]
TRACE_COLUMNS = ["order", "rule_id", "scheduled", "matched", "applied_actions", "summary"]
WARNING_COLUMNS = ["rule_id", "reason", "message", "condition_id", "action_id"]
AUDIT_COLUMNS = ["gate_id", "passed", "total", "succeeded", "success_rate", "threshold", "details"]


def _join(ids) -> str:
    return ",".join(sorted(ids))


def rules_frame(graph: CompiledGraph) -> pd.DataFrame:
    """One row per compiled rule, in graph order."""
    rows = []
    for node in graph.nodes:
        rule = node.rule
        rows.append({
            "order": node.order,
            "rule_id": rule.id,
            "name": rule.name,
            "trigger": rule.trigger.value,
            "conditions": sum(len(group.conditions) for group in rule.condition_groups),
            "actions": len(rule.actions),
            "reads": _join(node.reads),
            "writes": _join(node.writes),
            "upstream": len(graph.upstream(rule.id)),
            "downstream": len(graph.downstream([rule.id])),
        })
    return pd.DataFrame(rows, columns=RULE_COLUMNS)


def dependency_frame(graph: CompiledGraph) -> pd.DataFrame:
    """Dependency edges: from_rule writes `fields` that to_rule reads."""
    rows = [
        {"from_rule": source, "to_rule": target, "fields": _join(data.get("fields", ()))}
        for source, target, data in graph.dependency_graph.edges(data=True)
    ]
    df = pd.DataFrame(rows, columns=EDGE_COLUMNS)
    return df.sort_values(["from_rule", "to_rule"]).reset_index(drop=True)


def state_frame(result: EvaluationResult) -> pd.DataFrame:
    rows = [
        {
            "field_id": field_id,
            "visible": state.visible,
            "required": state.required,
            "enabled": state.enabled,
            "value_set": state.value_set,
            "value": state.value if state.value_set else None,
        }
        for field_id, state in result.derived_state.items()
    ]
    return pd.DataFrame(rows, columns=STATE_COLUMNS)


def trace_frame(result: EvaluationResult) -> pd.DataFrame:
    rows = [
        {
            "order": trace.order,
            "rule_id": trace.rule_id,
            "scheduled": trace.scheduled,
            "matched": trace.matched,
            "applied_actions": ",".join(trace.applied_actions),
            "summary": trace.summary(),
        }
        for trace in result.trace
    ]
    return pd.DataFrame(rows, columns=TRACE_COLUMNS)


def warnings_frame(result: EvaluationResult) -> pd.DataFrame:
    return pd.DataFrame([w.to_dict() for w in result.warnings], columns=WARNING_COLUMNS)


def audit_frame(results: List[AuditResult]) -> pd.DataFrame:
    rows = [
        {
            "gate_id": r.gate_id,
            "passed": r.passed,
            "total": r.total,
            "succeeded": r.succeeded,
            "success_rate": r.success_rate,
            "threshold": r.threshold,
            "details": r.details,
        }
        for r in results
    ]
    return pd.DataFrame(rows, columns=AUDIT_COLUMNS)


__all__ = [
    "rules_frame",
    "dependency_frame",
    "state_frame",
    "trace_frame",
    "warnings_frame",
    "audit_frame",
]
