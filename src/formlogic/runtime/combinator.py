"""
Group combinator: fold conditions and condition groups into one boolean.

Both levels short-circuit (AND stops at the first False, OR at the first
True). Conditions skipped by short-circuiting are not evaluated and produce
no ConditionResult, so they cannot raise warnings either.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Tuple

from formlogic.core.fields import FormSchema
from formlogic.core.results import ConditionResult
from formlogic.core.rules import ConditionGroup, LogicalOperator, LogicRule
from formlogic.runtime.conditions import evaluate_condition


def evaluate_group(
    group: ConditionGroup,
    values: Mapping[str, Any],
    schema: FormSchema,
) -> Tuple[bool, List[ConditionResult]]:
    """
    Evaluate a condition group.

    A single-condition group ignores its logical operator. An empty group
    never reaches evaluation (it is a compile error); it evaluates False.

    Returns:
        (outcome, results of the conditions actually evaluated)
    """
    results: List[ConditionResult] = []
    if not group.conditions:
        return False, results

    want_all = group.logical_operator == LogicalOperator.AND or len(group.conditions) == 1
    for condition in group.conditions:
        result = evaluate_condition(condition, values, schema)
        results.append(result)
        if want_all and not result.ok:
            return False, results
        if not want_all and result.ok:
            return True, results
    return want_all, results


def evaluate_rule_conditions(
    rule: LogicRule,
    values: Mapping[str, Any],
    schema: FormSchema,
) -> Tuple[bool, List[ConditionResult]]:
    """
    Evaluate a rule's condition groups with its group logical operator.

    A rule with zero condition groups holds unconditionally.

    Returns:
        (outcome, results of every condition evaluated across groups)
    """
    if not rule.condition_groups:
        return True, []

    results: List[ConditionResult] = []
    want_all = rule.group_logical_operator == LogicalOperator.AND
    for group in rule.condition_groups:
        outcome, group_results = evaluate_group(group, values, schema)
        results.extend(group_results)
        if want_all and not outcome:
            return False, results
        if not want_all and outcome:
            return True, results
    return want_all, results


__all__ = ["evaluate_group", "evaluate_rule_conditions"]
