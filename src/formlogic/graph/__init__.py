"""
Rule dependency graph.

This package compiles a rule set into a read-only CompiledGraph:
- errors: CompileError hierarchy (dangling references, cycles, ...)
- dependencies: read/write set extraction, networkx graph, deterministic order
"""

from formlogic.graph.errors import (
    CompileError,
    DanglingFieldReference,
    CyclicDependency,
    EmptyConditionGroup,
    MalformedExpression,
    RuleSetTooLarge,
)
from formlogic.graph.dependencies import (
    RuleNode,
    CompiledGraph,
    rule_reads,
    rule_writes,
    lint_rules,
    compile_rules,
)

__all__ = [
    # Errors
    "CompileError",
    "DanglingFieldReference",
    "CyclicDependency",
    "EmptyConditionGroup",
    "MalformedExpression",
    "RuleSetTooLarge",
    # Compilation
    "RuleNode",
    "CompiledGraph",
    "rule_reads",
    "rule_writes",
    "lint_rules",
    "compile_rules",
]
