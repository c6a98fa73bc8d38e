"""
Evaluation result types.

Enums and dataclasses returned by the runtime:
- ReasonCode explains every condition outcome (machine-readable)
- ConditionResult is one condition's outcome
- RuleWarning is a non-fatal problem surfaced to the form author
- FieldState / NavigationTarget make up the derived state of a pass
- RuleTrace / EvaluationResult describe one evaluate() call
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, auto
from typing import Any, Dict, List, Optional


class ReasonCode(IntEnum):
    """
    Reason codes for condition and action outcomes.

    OK and MISSING_VALUE are ordinary outcomes; the remaining codes mark a
    misconfigured rule and are reported as warnings.
    """

    # Success
    OK = 0  # Evaluated to true/false normally

    # Missing data (not a warning: the respondent has not answered yet)
    MISSING_VALUE = auto()

    # Configuration problems detected at runtime
    UNKNOWN_FIELD = auto()  # Condition field absent from the schema
    TYPE_MISMATCH = auto()  # Operator not defined for the field's type / value
    NOT_NUMERIC = auto()  # Numeric comparison on a non-numeric value

    # Calculation problems
    EMPTY_OPERAND = auto()  # Expression references a field with no value
    DIVISION_BY_ZERO = auto()
    CALCULATION_ERROR = auto()  # Overflow, domain error (sqrt(-1)), ...

    # Internal
    INTERNAL_ERROR = auto()  # Unexpected exception inside one rule


WARNING_REASONS = frozenset(code for code in ReasonCode if code not in (ReasonCode.OK, ReasonCode.MISSING_VALUE))


@dataclass(frozen=True)
class ConditionResult:
    """Outcome of one condition evaluation."""

    ok: bool
    reason: ReasonCode = ReasonCode.OK
    condition_id: Optional[str] = None
    message: Optional[str] = None

    @property
    def is_warning(self) -> bool:
        return self.reason in WARNING_REASONS

    @classmethod
    def success(cls, ok: bool, condition_id: Optional[str] = None) -> "ConditionResult":
        return cls(ok=bool(ok), reason=ReasonCode.OK, condition_id=condition_id)

    @classmethod
    def failure(cls, reason: ReasonCode, message: str, condition_id: Optional[str] = None) -> "ConditionResult":
        """Condition not met, with the reason why it could not be."""
        return cls(ok=False, reason=reason, condition_id=condition_id, message=message)


@dataclass(frozen=True)
class RuleWarning:
    """
    Non-fatal rule problem for the form author's debugging view.

    Never shown to respondents.
    """

    rule_id: str
    reason: ReasonCode
    message: str
    condition_id: Optional[str] = None
    action_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "reason": self.reason.name,
            "message": self.message,
            "condition_id": self.condition_id,
            "action_id": self.action_id,
        }


@dataclass
class FieldState:
    """Computed presentation state of one field."""

    visible: bool = True
    required: bool = False
    enabled: bool = True
    value: Any = None
    value_set: bool = False  # True when set_value / calculate produced `value`

    def to_dict(self) -> Dict[str, Any]:
        data = {"visible": self.visible, "required": self.required, "enabled": self.enabled}
        if self.value_set:
            data["value"] = self.value
        return data


@dataclass(frozen=True)
class NavigationTarget:
    """
    Where navigation should go next.

    Attributes:
        target_id: Page or field id.
        kind: "page" or "field".
        action_type: "skip_to", "jump_to", or "next_page" for default progression.
        rule_id: Rule that requested it; None for default progression.
        page_id: Page the target lives on, when the form has pages.
        source: "rule" or "default".
    """

    target_id: str
    kind: str
    action_type: str
    rule_id: Optional[str] = None
    page_id: Optional[str] = None
    source: str = "rule"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "kind": self.kind,
            "action_type": self.action_type,
            "rule_id": self.rule_id,
            "page_id": self.page_id,
            "source": self.source,
        }


@dataclass
class RuleTrace:
    """Trace of a single rule within a pass."""

    rule_id: str
    order: int
    scheduled: bool  # Selected by the trigger (batch), not only by the full pass
    matched: bool
    condition_results: List[ConditionResult] = field(default_factory=list)
    applied_actions: List[str] = field(default_factory=list)

    def summary(self) -> str:
        """One-line summary of condition outcomes."""
        if not self.condition_results:
            return f"{self.rule_id}: always -> {'FIRED' if self.matched else 'SKIPPED'}"
        parts = []
        for result in self.condition_results:
            if result.ok:
                status = "TRUE"
            elif result.reason == ReasonCode.OK:
                status = "FALSE"
            else:
                status = f"FALSE({result.reason.name})"
            parts.append(f"{result.condition_id}={status}")
        return f"{self.rule_id}: {', '.join(parts)} -> {'FIRED' if self.matched else 'SKIPPED'}"


@dataclass
class EvaluationResult:
    """
    Result of one evaluate() call.

    Attributes:
        derived_state: field id -> FieldState for every schema field.
        navigation: Pending navigation target, if a scheduled rule requested one.
        warnings: Non-fatal rule problems collected during the pass.
        fired_rules: Ids of scheduled rules whose conditions held, in graph order.
        trace: Per-rule trace of the full pass, in graph order.
    """

    derived_state: Dict[str, FieldState]
    navigation: Optional[NavigationTarget] = None
    warnings: List[RuleWarning] = field(default_factory=list)
    fired_rules: List[str] = field(default_factory=list)
    trace: List[RuleTrace] = field(default_factory=list)

    @property
    def value_changes(self) -> Dict[str, Any]:
        """Value instructions for the rendering surface (set_value / calculate)."""
        return {
            field_id: state.value
            for field_id, state in self.derived_state.items()
            if state.value_set
        }

    def visible_fields(self) -> List[str]:
        return [field_id for field_id, state in self.derived_state.items() if state.visible]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "derived_state": {k: v.to_dict() for k, v in self.derived_state.items()},
            "navigation": self.navigation.to_dict() if self.navigation else None,
            "warnings": [w.to_dict() for w in self.warnings],
            "fired_rules": list(self.fired_rules),
        }


__all__ = [
    "ReasonCode",
    "WARNING_REASONS",
    "ConditionResult",
    "RuleWarning",
    "FieldState",
    "NavigationTarget",
    "RuleTrace",
    "EvaluationResult",
]
