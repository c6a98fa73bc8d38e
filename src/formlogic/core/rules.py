"""
Rule definitions: conditions, condition groups, actions and logic rules.

These are the authoring-time documents produced by the builder UI. They are
plain immutable values; compilation (formlogic.graph) turns a rule set into
a read-only dependency graph and evaluation never mutates them.

Documents are stored as camelCase JSON:

    {
      "formId": "f1",
      "rules": [{
        "id": "r1", "name": "US needs state", "enabled": true,
        "trigger": "on_change",
        "groupLogicalOperator": "AND",
        "conditionGroups": [{
          "id": "g1", "logicalOperator": "AND",
          "conditions": [{"id": "c1", "fieldId": "country",
                          "operator": "equals", "value": "US"}]
        }],
        "actions": [{"id": "a1", "type": "show", "targetFieldId": "state"}]
      }]
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type, TypeVar

from formlogic.utils.values import to_bool


class RuleDefinitionError(ValueError):
    """A rule document is malformed (unknown operator, missing id, ...)."""

    def __init__(self, rule_id: Optional[str], message: str):
        self.rule_id = rule_id
        prefix = f"Rule '{rule_id}': " if rule_id else ""
        super().__init__(f"{prefix}{message}")


# =============================================================================
# ENUMS
# =============================================================================

class ComparisonOperator(str, Enum):
    """Operators a condition can apply to its field's value."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    IS_SELECTED = "is_selected"
    IS_NOT_SELECTED = "is_not_selected"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class ActionType(str, Enum):
    """What a firing rule does to its target."""

    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    OPTIONAL = "optional"
    ENABLE = "enable"
    DISABLE = "disable"
    SET_VALUE = "set_value"
    SKIP_TO = "skip_to"
    JUMP_TO = "jump_to"
    CALCULATE = "calculate"


class RuleTrigger(str, Enum):
    """Event kind that makes a rule eligible to run."""

    IMMEDIATE = "immediate"
    ON_CHANGE = "on_change"
    ON_SUBMIT = "on_submit"
    ON_BLUR = "on_blur"


# Operators that are meaningful on a field nobody has touched
EMPTINESS_OPERATORS = frozenset({ComparisonOperator.IS_EMPTY, ComparisonOperator.IS_NOT_EMPTY})

NAVIGATION_ACTIONS = frozenset({ActionType.SKIP_TO, ActionType.JUMP_TO})
VALUE_ACTIONS = frozenset({ActionType.SET_VALUE, ActionType.CALCULATE})


_E = TypeVar("_E", bound=Enum)


def _parse_enum(enum_cls: Type[_E], raw: Any, rule_id: Optional[str], what: str) -> _E:
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except ValueError:
        if isinstance(raw, str):
            # Logical operators are sometimes stored lower-case
            for member in enum_cls:
                if member.value.lower() == raw.strip().lower():
                    return member
        allowed = ", ".join(m.value for m in enum_cls)
        raise RuleDefinitionError(rule_id, f"unknown {what} {raw!r} (allowed: {allowed})")


def _parse_flag(raw: Any, rule_id: Optional[str], what: str) -> bool:
    flag = to_bool(raw)
    if flag is None:
        raise RuleDefinitionError(rule_id, f"{what} must be a boolean, got {raw!r}")
    return flag


def _require_id(raw: Dict[str, Any], rule_id: Optional[str], what: str) -> str:
    value = raw.get("id")
    if value is None or str(value) == "":
        raise RuleDefinitionError(rule_id, f"{what} is missing an id")
    return str(value)


# =============================================================================
# RULE PARTS
# =============================================================================

@dataclass(frozen=True)
class Condition:
    """One comparison of a field's current value against a literal."""

    id: str
    field_id: str
    operator: ComparisonOperator
    value: Any = None
    label: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], rule_id: Optional[str] = None) -> "Condition":
        cond_id = _require_id(raw, rule_id, "condition")
        field_id = raw.get("fieldId")
        if not field_id:
            raise RuleDefinitionError(rule_id, f"condition '{cond_id}' has no fieldId")
        return cls(
            id=cond_id,
            field_id=str(field_id),
            operator=_parse_enum(ComparisonOperator, raw.get("operator"), rule_id, "operator"),
            value=raw.get("value"),
            label=raw.get("label"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "fieldId": self.field_id,
            "operator": self.operator.value,
            "value": self.value,
        }
        if self.label is not None:
            data["label"] = self.label
        return data


@dataclass(frozen=True)
class ConditionGroup:
    """Conditions combined with one logical operator."""

    id: str
    conditions: Tuple[Condition, ...]
    logical_operator: LogicalOperator = LogicalOperator.AND

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], rule_id: Optional[str] = None) -> "ConditionGroup":
        return cls(
            id=_require_id(raw, rule_id, "condition group"),
            conditions=tuple(Condition.from_dict(c, rule_id) for c in raw.get("conditions") or []),
            logical_operator=_parse_enum(
                LogicalOperator, raw.get("logicalOperator", "AND"), rule_id, "logical operator"
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "conditions": [c.to_dict() for c in self.conditions],
            "logicalOperator": self.logical_operator.value,
        }


@dataclass(frozen=True)
class Action:
    """
    One effect of a firing rule.

    For skip_to / jump_to, target_field_id names a page or field to navigate
    to rather than a field to mutate. calculate carries calculate_expression.
    """

    id: str
    type: ActionType
    target_field_id: str
    value: Any = None
    calculate_expression: Optional[str] = None

    @property
    def is_navigation(self) -> bool:
        return self.type in NAVIGATION_ACTIONS

    @property
    def writes_value(self) -> bool:
        return self.type in VALUE_ACTIONS

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], rule_id: Optional[str] = None) -> "Action":
        action_id = _require_id(raw, rule_id, "action")
        target = raw.get("targetFieldId")
        if not target:
            raise RuleDefinitionError(rule_id, f"action '{action_id}' has no targetFieldId")
        return cls(
            id=action_id,
            type=_parse_enum(ActionType, raw.get("type"), rule_id, "action type"),
            target_field_id=str(target),
            value=raw.get("value"),
            calculate_expression=raw.get("calculateExpression"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.type.value,
            "targetFieldId": self.target_field_id,
        }
        if self.value is not None:
            data["value"] = self.value
        if self.calculate_expression is not None:
            data["calculateExpression"] = self.calculate_expression
        return data


@dataclass(frozen=True)
class LogicRule:
    """
    A named rule: when its condition groups hold, apply its actions.

    A rule with no condition groups always holds.
    """

    id: str
    name: str
    condition_groups: Tuple[ConditionGroup, ...] = ()
    actions: Tuple[Action, ...] = ()
    trigger: RuleTrigger = RuleTrigger.ON_CHANGE
    group_logical_operator: LogicalOperator = LogicalOperator.AND
    enabled: bool = True
    description: Optional[str] = None

    def __post_init__(self):
        # Condition and action ids key warnings, traces and parsed expressions
        for kind, ids in (
            ("condition group", [g.id for g in self.condition_groups]),
            ("condition", [c.id for c in self.iter_conditions()]),
            ("action", [a.id for a in self.actions]),
        ):
            duplicates = sorted({item for item in ids if ids.count(item) > 1})
            if duplicates:
                raise RuleDefinitionError(self.id, f"duplicate {kind} ids {duplicates}")

    def iter_conditions(self) -> Iterator[Condition]:
        for group in self.condition_groups:
            yield from group.conditions

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "LogicRule":
        rule_id = _require_id(raw, None, "rule")
        return cls(
            id=rule_id,
            name=str(raw.get("name") or rule_id),
            condition_groups=tuple(
                ConditionGroup.from_dict(g, rule_id) for g in raw.get("conditionGroups") or []
            ),
            actions=tuple(Action.from_dict(a, rule_id) for a in raw.get("actions") or []),
            trigger=_parse_enum(RuleTrigger, raw.get("trigger", "on_change"), rule_id, "trigger"),
            group_logical_operator=_parse_enum(
                LogicalOperator, raw.get("groupLogicalOperator", "AND"), rule_id, "logical operator"
            ),
            enabled=_parse_flag(raw.get("enabled", True), rule_id, "enabled"),
            description=raw.get("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "conditionGroups": [g.to_dict() for g in self.condition_groups],
            "groupLogicalOperator": self.group_logical_operator.value,
            "actions": [a.to_dict() for a in self.actions],
            "trigger": self.trigger.value,
        }
        if self.description is not None:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class FormLogic:
    """All rules of one form, keyed by form id."""

    form_id: str
    rules: Tuple[LogicRule, ...] = ()

    @property
    def enabled_rules(self) -> List[LogicRule]:
        return [rule for rule in self.rules if rule.enabled]

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FormLogic":
        form_id = raw.get("formId")
        if not form_id:
            raise RuleDefinitionError(None, "form logic document has no formId")
        rules = tuple(LogicRule.from_dict(r) for r in raw.get("rules") or [])
        seen = set()
        for rule in rules:
            if rule.id in seen:
                raise RuleDefinitionError(rule.id, "duplicate rule id")
            seen.add(rule.id)
        return cls(form_id=str(form_id), rules=rules)

    def to_dict(self) -> Dict[str, Any]:
        return {"formId": self.form_id, "rules": [r.to_dict() for r in self.rules]}


__all__ = [
    "RuleDefinitionError",
    "ComparisonOperator",
    "LogicalOperator",
    "ActionType",
    "RuleTrigger",
    "EMPTINESS_OPERATORS",
    "NAVIGATION_ACTIONS",
    "VALUE_ACTIONS",
    "Condition",
    "ConditionGroup",
    "Action",
    "LogicRule",
    "FormLogic",
]
