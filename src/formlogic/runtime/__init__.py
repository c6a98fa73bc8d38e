"""
Runtime evaluation of compiled rule graphs.

Design principles:
- Compile once, evaluate many: the CompiledGraph is read-only
- Every pass starts from schema defaults (no sticky overrides)
- Runtime problems become warnings; evaluation never raises
- A ReasonCode for every condition outcome
"""

from formlogic.runtime.conditions import OPERATORS, evaluate_condition
from formlogic.runtime.combinator import evaluate_group, evaluate_rule_conditions
from formlogic.runtime.scheduler import TriggerKind, TriggerEvent, select_rules
from formlogic.runtime.executor import default_state, run_pass, evaluate
from formlogic.runtime.session import FormSession

__all__ = [
    # Conditions
    "OPERATORS",
    "evaluate_condition",
    "evaluate_group",
    "evaluate_rule_conditions",
    # Scheduling
    "TriggerKind",
    "TriggerEvent",
    "select_rules",
    # Execution
    "default_state",
    "run_pass",
    "evaluate",
    # Session
    "FormSession",
]
