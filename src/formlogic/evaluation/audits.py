"""
Deterministic authoring audits over a compiled rule graph.

Compile errors block publishing; these gates flag rule sets that compile
but probably do not do what the author intended. Each gate returns an
AuditResult for the builder's debugging view.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from formlogic.core.rules import ActionType
from formlogic.graph.dependencies import CompiledGraph


@dataclass
class AuditResult:
    gate_id: str
    passed: bool
    total: int
    succeeded: int
    threshold: float
    details: str = ""

    @property
    def success_rate(self) -> float:
        return self.succeeded / self.total if self.total else 1.0


def run_audits(graph: CompiledGraph) -> List[AuditResult]:
    gates = [
        actionless_rules_gate(graph),
        competing_value_writers_gate(graph),
        unreachable_required_fields_gate(graph),
        navigation_targets_gate(graph),
    ]
    return gates


def actionless_rules_gate(graph: CompiledGraph) -> AuditResult:
    """Every rule should do something when it fires."""
    total = len(graph)
    empty = [node.rule_id for node in graph.nodes if not node.rule.actions]
    details = f"rules_without_actions={empty}" if empty else ""
    return AuditResult(
        gate_id="formlogic_actionless_rules",
        passed=not empty,
        total=total,
        succeeded=total - len(empty),
        threshold=1.0,
        details=details,
    )


def competing_value_writers_gate(graph: CompiledGraph) -> AuditResult:
    """
    Flag fields populated by more than one rule.

    Last writer in graph order wins, which is deterministic but rarely what
    the author meant.
    """
    writers: Dict[str, List[str]] = {}
    for node in graph.nodes:
        for action in node.rule.actions:
            if action.writes_value:
                bucket = writers.setdefault(action.target_field_id, [])
                if node.rule_id not in bucket:
                    bucket.append(node.rule_id)
    if not writers:
        return AuditResult(
            gate_id="formlogic_competing_value_writers",
            passed=True,
            total=0,
            succeeded=0,
            threshold=1.0,
            details="No set_value or calculate actions",
        )
    competing = {field_id: ids for field_id, ids in sorted(writers.items()) if len(ids) > 1}
    details = "; ".join(f"{field_id}<-{','.join(ids)}" for field_id, ids in competing.items())
    return AuditResult(
        gate_id="formlogic_competing_value_writers",
        passed=not competing,
        total=len(writers),
        succeeded=len(writers) - len(competing),
        threshold=1.0,
        details=details,
    )


def unreachable_required_fields_gate(graph: CompiledGraph) -> AuditResult:
    """Required fields that start hidden need a rule that can show them."""
    shown = {
        action.target_field_id
        for node in graph.nodes
        for action in node.rule.actions
        if action.type == ActionType.SHOW
    }
    candidates = [spec for spec in graph.schema.fields if spec.required and not spec.visible]
    unreachable = [spec.id for spec in candidates if spec.id not in shown]
    return AuditResult(
        gate_id="formlogic_unreachable_required_fields",
        passed=not unreachable,
        total=len(candidates),
        succeeded=len(candidates) - len(unreachable),
        threshold=1.0,
        details=f"hidden_required_without_show={unreachable}" if unreachable else "",
    )


def navigation_targets_gate(graph: CompiledGraph) -> AuditResult:
    """
    Navigation targets should resolve to a page or field of the schema.

    Compilation already enforces this unless validate_navigation_targets is
    off; the gate reports the same check for such graphs.
    """
    schema = graph.schema
    targets = [
        (node.rule_id, action.target_field_id)
        for node in graph.nodes
        for action in node.rule.actions
        if action.is_navigation
    ]
    dangling = [
        f"{rule_id}->{target}"
        for rule_id, target in targets
        if target not in schema and not schema.is_page(target)
    ]
    return AuditResult(
        gate_id="formlogic_navigation_targets",
        passed=not dangling,
        total=len(targets),
        succeeded=len(targets) - len(dangling),
        threshold=1.0,
        details=f"dangling={dangling}" if dangling else "",
    )


__all__ = [
    "AuditResult",
    "run_audits",
    "actionless_rules_gate",
    "competing_value_writers_gate",
    "unreachable_required_fields_gate",
    "navigation_targets_gate",
]
