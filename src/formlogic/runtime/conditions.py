"""
Operator implementations for condition evaluation.

Type contracts (resolved against the field's declared type at evaluation time):
- equals, not_equals: numeric fields compare numerically, booleans and
  lone checkboxes by truth value, multi-valued selections as sets,
  everything else case-sensitively on the string form
- contains, not_contains: substring of the string form; for multi-valued
  selections, membership of one option
- starts_with, ends_with: string-like values only
- greater_than, less_than: numeric fields (after coercion) and temporal
  fields (ISO dates / times)
- is_empty, is_not_empty: any field; untouched counts as empty
- is_selected, is_not_selected: choice fields only

An untouched field fails every operator except is_empty / is_not_empty
(reason MISSING_VALUE, not a warning). Unknown fields and type mismatches
evaluate to False with a warning reason. Nothing here raises.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Callable, Dict, Mapping, Optional

from formlogic.constants import FIELD_TYPE_CHECKBOX
from formlogic.core.fields import FieldSpec, FormSchema
from formlogic.core.results import ConditionResult, ReasonCode
from formlogic.core.rules import EMPTINESS_OPERATORS, ComparisonOperator, Condition
from formlogic.utils.values import (
    as_list,
    as_text,
    is_empty_value,
    is_missing,
    is_multi_value,
    to_bool,
    to_number,
    to_temporal,
)

_ABSENT = object()

OperatorFn = Callable[[Any, Any, FieldSpec, str], ConditionResult]


def _mismatch(spec: FieldSpec, op: str, cond_id: str, detail: str = "") -> ConditionResult:
    message = f"Operator '{op}' is not defined for {spec.type} field '{spec.id}'"
    if detail:
        message = f"{message}: {detail}"
    return ConditionResult.failure(ReasonCode.TYPE_MISMATCH, message, cond_id)


def _negate(result: ConditionResult) -> ConditionResult:
    """Invert a successful outcome; failures stay failures (fail closed)."""
    if result.reason != ReasonCode.OK:
        return result
    return ConditionResult.success(not result.ok, result.condition_id)


def _text_set(value: Any) -> set:
    return {as_text(item) for item in as_list(value)}


# =============================================================================
# OPERATORS
# =============================================================================

def eval_equals(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    """Type-aware equality."""
    if is_multi_value(actual) or spec.is_multi_value:
        return ConditionResult.success(_text_set(actual) == _text_set(expected), cond_id)

    if spec.is_numeric:
        lhs, rhs = to_number(actual), to_number(expected)
        if lhs is None or rhs is None:
            bad = actual if lhs is None else expected
            return ConditionResult.failure(
                ReasonCode.NOT_NUMERIC,
                f"Cannot compare numeric field '{spec.id}' with non-numeric {bad!r}",
                cond_id,
            )
        return ConditionResult.success(lhs == rhs, cond_id)

    if isinstance(actual, bool) or spec.type == FIELD_TYPE_CHECKBOX:
        lhs_bool, rhs_bool = to_bool(actual), to_bool(expected)
        if lhs_bool is None or rhs_bool is None:
            bad = actual if lhs_bool is None else expected
            return _mismatch(spec, "equals", cond_id, f"{bad!r} is not a boolean")
        return ConditionResult.success(lhs_bool == rhs_bool, cond_id)

    if spec.is_temporal:
        lhs_t, rhs_t = to_temporal(actual), to_temporal(expected)
        if lhs_t is not None and rhs_t is not None:
            return ConditionResult.success(lhs_t == rhs_t, cond_id)

    return ConditionResult.success(as_text(actual) == as_text(expected), cond_id)


def eval_not_equals(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    return _negate(eval_equals(actual, expected, spec, cond_id))


def eval_contains(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    """Substring, or option membership for multi-valued selections."""
    if is_multi_value(actual) or spec.is_multi_value:
        return ConditionResult.success(_text_set(expected) <= _text_set(actual), cond_id)
    if spec.is_numeric:
        return _mismatch(spec, "contains", cond_id)
    return ConditionResult.success(as_text(expected) in as_text(actual), cond_id)


def eval_not_contains(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    return _negate(eval_contains(actual, expected, spec, cond_id))


def eval_starts_with(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    if is_multi_value(actual) or spec.is_numeric:
        return _mismatch(spec, "starts_with", cond_id)
    return ConditionResult.success(as_text(actual).startswith(as_text(expected)), cond_id)


def eval_ends_with(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    if is_multi_value(actual) or spec.is_numeric:
        return _mismatch(spec, "ends_with", cond_id)
    return ConditionResult.success(as_text(actual).endswith(as_text(expected)), cond_id)


def _align_temporal(lhs: Any, rhs: Any):
    # datetime is a subclass of date; widen a bare date to midnight
    if isinstance(lhs, datetime) and not isinstance(rhs, datetime) and isinstance(rhs, date):
        rhs = datetime.combine(rhs, time())
    elif isinstance(rhs, datetime) and not isinstance(lhs, datetime) and isinstance(lhs, date):
        lhs = datetime.combine(lhs, time())
    return lhs, rhs


def _ordered(op: str, actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    if spec.is_temporal:
        lhs_t, rhs_t = to_temporal(actual), to_temporal(expected)
        if lhs_t is None or rhs_t is None:
            return _mismatch(spec, op, cond_id, "operands are not ISO dates/times")
        lhs_t, rhs_t = _align_temporal(lhs_t, rhs_t)
        try:
            outcome = lhs_t > rhs_t if op == "greater_than" else lhs_t < rhs_t
        except TypeError:
            return _mismatch(spec, op, cond_id, "cannot compare a time with a date")
        return ConditionResult.success(outcome, cond_id)

    if not spec.is_numeric:
        return _mismatch(spec, op, cond_id)

    lhs, rhs = to_number(actual), to_number(expected)
    if lhs is None or rhs is None:
        bad = actual if lhs is None else expected
        return ConditionResult.failure(
            ReasonCode.NOT_NUMERIC,
            f"Operator '{op}' needs numbers, got {bad!r} for field '{spec.id}'",
            cond_id,
        )
    return ConditionResult.success(lhs > rhs if op == "greater_than" else lhs < rhs, cond_id)


def eval_greater_than(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    return _ordered("greater_than", actual, expected, spec, cond_id)


def eval_less_than(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    return _ordered("less_than", actual, expected, spec, cond_id)


def eval_is_selected(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    """One specific option id is among the field's selection."""
    if not spec.is_choice:
        return _mismatch(spec, "is_selected", cond_id)
    if isinstance(actual, bool):
        # Single checkbox toggle: "selected" means checked
        wanted = to_bool(expected)
        return ConditionResult.success(actual == (True if wanted is None else wanted), cond_id)
    if is_multi_value(actual):
        return ConditionResult.success(as_text(expected) in _text_set(actual), cond_id)
    return ConditionResult.success(as_text(actual) == as_text(expected), cond_id)


def eval_is_not_selected(actual: Any, expected: Any, spec: FieldSpec, cond_id: str) -> ConditionResult:
    return _negate(eval_is_selected(actual, expected, spec, cond_id))


# Operator dispatch table (is_empty / is_not_empty are handled before dispatch)
OPERATORS: Dict[ComparisonOperator, OperatorFn] = {
    ComparisonOperator.EQUALS: eval_equals,
    ComparisonOperator.NOT_EQUALS: eval_not_equals,
    ComparisonOperator.CONTAINS: eval_contains,
    ComparisonOperator.NOT_CONTAINS: eval_not_contains,
    ComparisonOperator.STARTS_WITH: eval_starts_with,
    ComparisonOperator.ENDS_WITH: eval_ends_with,
    ComparisonOperator.GREATER_THAN: eval_greater_than,
    ComparisonOperator.LESS_THAN: eval_less_than,
    ComparisonOperator.IS_SELECTED: eval_is_selected,
    ComparisonOperator.IS_NOT_SELECTED: eval_is_not_selected,
}


def evaluate_condition(
    condition: Condition,
    values: Mapping[str, Any],
    schema: FormSchema,
) -> ConditionResult:
    """
    Evaluate one condition against a value snapshot.

    Args:
        condition: The condition to test.
        values: field id -> current value. Absent keys are untouched fields.
        schema: Declares each field's type.

    Returns:
        ConditionResult; `ok` is the boolean outcome.
    """
    spec: Optional[FieldSpec] = schema.get(condition.field_id)
    if spec is None:
        return ConditionResult.failure(
            ReasonCode.UNKNOWN_FIELD,
            f"Field '{condition.field_id}' does not exist in the form",
            condition.id,
        )

    actual = values.get(condition.field_id, _ABSENT)
    untouched = actual is _ABSENT or is_missing(actual)

    if condition.operator in EMPTINESS_OPERATORS:
        empty = untouched or is_empty_value(actual)
        return ConditionResult.success(empty == (condition.operator == ComparisonOperator.IS_EMPTY), condition.id)

    if untouched:
        return ConditionResult.failure(
            ReasonCode.MISSING_VALUE,
            f"Field '{condition.field_id}' has no value yet",
            condition.id,
        )

    return OPERATORS[condition.operator](actual, condition.value, spec, condition.id)


__all__ = [
    "OPERATORS",
    "evaluate_condition",
    "eval_equals",
    "eval_not_equals",
    "eval_contains",
    "eval_not_contains",
    "eval_starts_with",
    "eval_ends_with",
    "eval_greater_than",
    "eval_less_than",
    "eval_is_selected",
    "eval_is_not_selected",
]
