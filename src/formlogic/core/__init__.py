"""
formlogic core types.

Layer Architecture:
    Schema Layer:      FieldSpec / FormSchema (owned by the form schema store)
                           ↓
    Rule Layer:        Condition → ConditionGroup → LogicRule → FormLogic
                           ↓
    Expression Layer:  CompiledExpression (calculate actions)
                           ↓
    Result Layer:      FieldState, NavigationTarget, RuleWarning, EvaluationResult

Usage:
    from formlogic.core import FormLogic, FormSchema, LogicRule
"""

from formlogic.core.fields import FieldSpec, FormSchema, SchemaInput
from formlogic.core.rules import (
    RuleDefinitionError,
    ComparisonOperator,
    LogicalOperator,
    ActionType,
    RuleTrigger,
    Condition,
    ConditionGroup,
    Action,
    LogicRule,
    FormLogic,
)
from formlogic.core.expressions import (
    ExpressionParseError,
    ExpressionOutcome,
    CompiledExpression,
    parse_expression,
)
from formlogic.core.results import (
    ReasonCode,
    ConditionResult,
    RuleWarning,
    FieldState,
    NavigationTarget,
    RuleTrace,
    EvaluationResult,
)

__all__ = [
    # Schema
    "FieldSpec",
    "FormSchema",
    "SchemaInput",
    # Rules
    "RuleDefinitionError",
    "ComparisonOperator",
    "LogicalOperator",
    "ActionType",
    "RuleTrigger",
    "Condition",
    "ConditionGroup",
    "Action",
    "LogicRule",
    "FormLogic",
    # Expressions
    "ExpressionParseError",
    "ExpressionOutcome",
    "CompiledExpression",
    "parse_expression",
    # Results
    "ReasonCode",
    "ConditionResult",
    "RuleWarning",
    "FieldState",
    "NavigationTarget",
    "RuleTrace",
    "EvaluationResult",
]
