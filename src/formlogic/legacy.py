"""
Legacy per-field conditional logic.

Older forms store logic on the field itself instead of in a FormLogic
document:

    {
      "id": "state", "type": "select",
      "conditionalLogic": {
        "enabled": true,
        "action": "show",
        "rules": [{"field": "country", "operator": "equals", "value": "US"}],
        "logic": "and"
      }
    }

Each enabled block becomes one LogicRule on the field itself:
- one condition group holding the block's rules, combined with `logic`
- a single show or hide action targeting the field
- trigger on_change

A "show" block also makes the field start hidden (see FieldSpec.from_dict),
so the field appears only while the conditions hold.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from formlogic.core.rules import (
    Action,
    ActionType,
    ComparisonOperator,
    Condition,
    ConditionGroup,
    FormLogic,
    LogicalOperator,
    LogicRule,
    RuleDefinitionError,
    RuleTrigger,
)
from formlogic.utils.text import slugify, stable_hash


logger = logging.getLogger(__name__)

LEGACY_RULE_PREFIX = "legacy"

# camelCase operators of the legacy format
LEGACY_OPERATORS = {
    "equals": ComparisonOperator.EQUALS,
    "notEquals": ComparisonOperator.NOT_EQUALS,
    "contains": ComparisonOperator.CONTAINS,
    "greaterThan": ComparisonOperator.GREATER_THAN,
    "lessThan": ComparisonOperator.LESS_THAN,
    "isEmpty": ComparisonOperator.IS_EMPTY,
    "isNotEmpty": ComparisonOperator.IS_NOT_EMPTY,
}

LEGACY_ACTIONS = {
    "show": ActionType.SHOW,
    "hide": ActionType.HIDE,
}


def legacy_rule_id(field_id: str) -> str:
    """Deterministic rule id for a field's legacy block."""
    return f"{LEGACY_RULE_PREFIX}_{slugify(field_id, max_len=24) or 'field'}_{stable_hash([field_id], 8)}"


def rule_from_field(raw: Dict[str, Any]) -> Optional[LogicRule]:
    """
    Convert one field document's conditionalLogic block.

    Returns:
        The LogicRule, or None when the field has no enabled block or the
        block has no usable rules.

    Raises:
        RuleDefinitionError: Unknown legacy operator or action.
    """
    field_id = raw.get("id")
    block = raw.get("conditionalLogic") or {}
    if not field_id or not block.get("enabled"):
        return None

    field_id = str(field_id)
    rule_id = legacy_rule_id(field_id)

    action_name = block.get("action", "show")
    if action_name not in LEGACY_ACTIONS:
        raise RuleDefinitionError(rule_id, f"unknown legacy action {action_name!r} on field '{field_id}'")

    conditions: List[Condition] = []
    for idx, item in enumerate(block.get("rules") or []):
        source = item.get("field")
        if not source:
            logger.warning(f"Skipping legacy rule {idx} on field '{field_id}': no source field")
            continue
        op_name = item.get("operator")
        if op_name not in LEGACY_OPERATORS:
            raise RuleDefinitionError(rule_id, f"unknown legacy operator {op_name!r} on field '{field_id}'")
        conditions.append(
            Condition(
                id=f"{rule_id}_c{idx}",
                field_id=str(source),
                operator=LEGACY_OPERATORS[op_name],
                value=item.get("value"),
            )
        )
    if not conditions:
        logger.warning(f"Field '{field_id}' has enabled legacy logic with no rules; ignored")
        return None

    logic = str(block.get("logic") or "and").upper()
    label = raw.get("label") or field_id
    return LogicRule(
        id=rule_id,
        name=f"{action_name.capitalize()} {label}",
        condition_groups=(
            ConditionGroup(
                id=f"{rule_id}_g0",
                conditions=tuple(conditions),
                logical_operator=LogicalOperator.OR if logic == "OR" else LogicalOperator.AND,
            ),
        ),
        actions=(
            Action(id=f"{rule_id}_a0", type=LEGACY_ACTIONS[action_name], target_field_id=field_id),
        ),
        trigger=RuleTrigger.ON_CHANGE,
        description="Converted from per-field conditional logic",
    )


def rules_from_field_logic(fields: Iterable[Dict[str, Any]]) -> List[LogicRule]:
    """Convert every enabled legacy block of a form's field documents, in form order."""
    rules = [rule for rule in (rule_from_field(raw) for raw in fields) if rule is not None]
    logger.debug(f"Converted {len(rules)} legacy field logic blocks")
    return rules


def merge_legacy_logic(form_logic: FormLogic, fields: Iterable[Dict[str, Any]]) -> FormLogic:
    """
    Append converted legacy rules to a FormLogic document.

    Raises:
        RuleDefinitionError: A converted rule id collides with an existing rule.
    """
    existing = {rule.id for rule in form_logic.rules}
    converted = rules_from_field_logic(fields)
    for rule in converted:
        if rule.id in existing:
            raise RuleDefinitionError(rule.id, "duplicate rule id")
    return FormLogic(form_id=form_logic.form_id, rules=tuple(form_logic.rules) + tuple(converted))


__all__ = [
    "LEGACY_OPERATORS",
    "LEGACY_ACTIONS",
    "legacy_rule_id",
    "rule_from_field",
    "rules_from_field_logic",
    "merge_legacy_logic",
]
