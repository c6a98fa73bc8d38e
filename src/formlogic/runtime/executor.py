"""
Action executor: run a full pass of the compiled graph over a snapshot.

Pass contract:
1. Start from the schema's default derived state, never from a previous
   pass, so a rule whose condition stops holding reverts its effect
2. Visit every enabled rule in graph order; evaluate its conditions against
   the snapshot overlaid with values written earlier in this pass
3. Apply the actions of every rule that holds:
   - show/hide -> visible, require/optional -> required, enable/disable -> enabled
   - set_value/calculate -> value instruction (last writer wins; a failed
     calculate counts as a write that leaves the field unset)
   - skip_to/jump_to -> pending navigation, only for scheduled rules
4. Collect runtime problems as warnings; never raise. A rule that raises
   part-way through its actions is rolled back to the state before it ran

Conflict resolution on booleans is last-writer-wins in graph order, except
that hide beats show and disable beats enable regardless of order.
Navigation is last-writer-wins in graph order; skip_to and jump_to are both
absolute page-or-field targets, so a later jump_to overrides an earlier
skip_to and vice versa.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from formlogic.core.fields import FormSchema
from formlogic.core.results import (
    EvaluationResult,
    FieldState,
    NavigationTarget,
    ReasonCode,
    RuleTrace,
    RuleWarning,
)
from formlogic.core.rules import Action, ActionType
from formlogic.graph.dependencies import CompiledGraph, RuleNode
from formlogic.runtime.combinator import evaluate_rule_conditions
from formlogic.runtime.scheduler import TriggerEvent, select_rules


logger = logging.getLogger(__name__)


def default_state(schema: FormSchema) -> Dict[str, FieldState]:
    """Derived state before any rule runs."""
    return {
        spec.id: FieldState(visible=spec.visible, required=spec.required, enabled=True)
        for spec in schema.fields
    }


class _Pass:
    """Mutable bookkeeping for one pass; discarded when the pass ends."""

    def __init__(self, graph: CompiledGraph, values: Mapping[str, Any], scheduled: Set[str]):
        self.graph = graph
        self.schema = graph.schema
        self.scheduled = scheduled
        self.working: Dict[str, Any] = dict(values)
        self.state = default_state(self.schema)
        self.hidden: Set[str] = set()
        self.disabled: Set[str] = set()
        self.navigation: Optional[NavigationTarget] = None
        self.warnings: List[RuleWarning] = []
        self.fired: List[str] = []
        self.trace: List[RuleTrace] = []

    def run(self) -> EvaluationResult:
        for node in self.graph.nodes:
            self._run_rule(node)
        return EvaluationResult(
            derived_state=self.state,
            navigation=self.navigation,
            warnings=self.warnings,
            fired_rules=self.fired,
            trace=self.trace,
        )

    def _run_rule(self, node: RuleNode) -> None:
        rule = node.rule
        scheduled = rule.id in self.scheduled
        trace = RuleTrace(rule_id=rule.id, order=node.order, scheduled=scheduled, matched=False)
        self.trace.append(trace)
        checkpoint = self._checkpoint()
        try:
            matched, results = evaluate_rule_conditions(rule, self.working, self.schema)
            trace.condition_results = results
            for result in results:
                if result.is_warning:
                    self._warn(rule.id, result.reason, result.message or "", condition_id=result.condition_id)
            trace.matched = matched
            if not matched:
                return
            for action in rule.actions:
                if self._apply(node, action, scheduled):
                    trace.applied_actions.append(action.id)
        except Exception as exc:
            # One misbehaving rule must not break the pass
            logger.exception(f"Rule {rule.id} failed during evaluation")
            self._restore(checkpoint)
            trace.matched = False
            trace.applied_actions = []
            self._warn(rule.id, ReasonCode.INTERNAL_ERROR, f"Rule raised {type(exc).__name__}: {exc}")
            return
        if scheduled:
            self.fired.append(rule.id)

    def _checkpoint(self) -> tuple:
        return (
            {field_id: replace(state) for field_id, state in self.state.items()},
            dict(self.working),
            set(self.hidden),
            set(self.disabled),
            self.navigation,
            len(self.warnings),
        )

    def _restore(self, checkpoint: tuple) -> None:
        state, working, hidden, disabled, navigation, warning_count = checkpoint
        self.state = state
        self.working = working
        self.hidden = hidden
        self.disabled = disabled
        self.navigation = navigation
        del self.warnings[warning_count:]

    def _warn(self, rule_id: str, reason: ReasonCode, message: str, **ids) -> None:
        logger.debug(f"Rule {rule_id} warning {reason.name}: {message}")
        self.warnings.append(RuleWarning(rule_id=rule_id, reason=reason, message=message, **ids))

    def _apply(self, node: RuleNode, action: Action, scheduled: bool) -> bool:
        """Apply one action; return True if it took effect."""
        if action.is_navigation:
            return scheduled and self._navigate(node.rule_id, action)

        target = action.target_field_id
        state = self.state.get(target)
        if state is None:
            self._warn(
                node.rule_id,
                ReasonCode.UNKNOWN_FIELD,
                f"Action target '{target}' does not exist in the form",
                action_id=action.id,
            )
            return False

        kind = action.type
        if kind == ActionType.SHOW:
            if target not in self.hidden:
                state.visible = True
        elif kind == ActionType.HIDE:
            state.visible = False
            self.hidden.add(target)
        elif kind == ActionType.REQUIRE:
            state.required = True
        elif kind == ActionType.OPTIONAL:
            state.required = False
        elif kind == ActionType.ENABLE:
            if target not in self.disabled:
                state.enabled = True
        elif kind == ActionType.DISABLE:
            state.enabled = False
            self.disabled.add(target)
        elif kind == ActionType.SET_VALUE:
            self._write_value(target, action.value)
        elif kind == ActionType.CALCULATE:
            expression = node.expressions[action.id]
            outcome = expression.evaluate(self.working, self.graph.config.calculation_decimal_places)
            if not outcome.ok:
                # A failed calculation is still the latest write: the field ends up unset
                self._clear_value(target)
                self._warn(node.rule_id, outcome.reason, outcome.message or "", action_id=action.id)
                return False
            self._write_value(target, outcome.value)
        return True

    def _write_value(self, target: str, value: Any) -> None:
        state = self.state[target]
        state.value = value
        state.value_set = True
        self.working[target] = value

    def _clear_value(self, target: str) -> None:
        state = self.state[target]
        state.value = None
        state.value_set = False
        self.working.pop(target, None)

    def _navigate(self, rule_id: str, action: Action) -> bool:
        if self.navigation is not None:
            logger.debug(f"Rule {rule_id} overrides navigation to {self.navigation.target_id}")
        target = action.target_field_id
        self.navigation = NavigationTarget(
            target_id=target,
            kind="page" if self.schema.is_page(target) else "field",
            action_type=action.type.value,
            rule_id=rule_id,
            page_id=self.schema.page_of(target),
        )
        return True


def run_pass(
    graph: CompiledGraph,
    values: Optional[Mapping[str, Any]],
    scheduled: Sequence[str] = (),
) -> EvaluationResult:
    """
    Run one full pass over every enabled rule.

    Args:
        graph: Compiled rule graph.
        values: field id -> current value (the snapshot); None means empty.
        scheduled: Rule ids selected by the triggering event; only these may
            navigate and only these are reported as fired.

    Returns:
        EvaluationResult for the pass.
    """
    result = _Pass(graph, {} if values is None else values, set(scheduled)).run()
    logger.debug(
        f"Pass over {len(graph)} rules: {len(result.fired_rules)} fired, "
        f"{len(result.warnings)} warnings, navigation={result.navigation}"
    )
    return result


def evaluate(
    graph: CompiledGraph,
    trigger: TriggerEvent,
    snapshot: Optional[Mapping[str, Any]],
) -> EvaluationResult:
    """
    Evaluate a snapshot for an event.

    Pure function of (graph, trigger, snapshot): calling it twice with the
    same arguments yields the same derived state and navigation.
    """
    scheduled = select_rules(graph, trigger)
    return run_pass(graph, snapshot, scheduled)


__all__ = ["default_state", "run_pass", "evaluate"]
