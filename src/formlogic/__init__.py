"""
formlogic: conditional logic engine for form builders.

Given a form schema and a set of declarative rules, compute for any snapshot
of respondent values which fields are visible, required, enabled or
auto-populated, and where navigation should go next.

Usage:
    from formlogic import FormSession, TriggerEvent, compile_rules, evaluate

    graph = compile_rules(rules, schema)          # once per rule-set version
    result = evaluate(graph, TriggerEvent.change("country"), {"country": "US"})
    result.derived_state["state"].visible

    session = FormSession(graph)                  # once per respondent
    session.on_load()
    session.on_change("country", "US")
"""

from formlogic.config import EngineConfig
from formlogic.core import (
    Action,
    ActionType,
    ComparisonOperator,
    Condition,
    ConditionGroup,
    EvaluationResult,
    FieldSpec,
    FieldState,
    FormLogic,
    FormSchema,
    LogicalOperator,
    LogicRule,
    NavigationTarget,
    ReasonCode,
    RuleDefinitionError,
    RuleTrigger,
    RuleWarning,
)
from formlogic.graph import (
    CompileError,
    CompiledGraph,
    CyclicDependency,
    DanglingFieldReference,
    EmptyConditionGroup,
    MalformedExpression,
    RuleSetTooLarge,
    compile_rules,
    lint_rules,
)
from formlogic.runtime import FormSession, TriggerEvent, TriggerKind, evaluate
from formlogic.legacy import rules_from_field_logic

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "EngineConfig",
    # Types
    "Action",
    "ActionType",
    "ComparisonOperator",
    "Condition",
    "ConditionGroup",
    "EvaluationResult",
    "FieldSpec",
    "FieldState",
    "FormLogic",
    "FormSchema",
    "LogicalOperator",
    "LogicRule",
    "NavigationTarget",
    "ReasonCode",
    "RuleDefinitionError",
    "RuleTrigger",
    "RuleWarning",
    # Compilation
    "CompileError",
    "CompiledGraph",
    "CyclicDependency",
    "DanglingFieldReference",
    "EmptyConditionGroup",
    "MalformedExpression",
    "RuleSetTooLarge",
    "compile_rules",
    "lint_rules",
    # Evaluation
    "FormSession",
    "TriggerEvent",
    "TriggerKind",
    "evaluate",
    "rules_from_field_logic",
]
