"""
Compile-time errors for rule sets.

Compile errors are fatal: they block publishing a form and are surfaced to
the form author, never to a respondent. Each carries the offending rule ids
so the builder UI can highlight them.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class CompileError(Exception):
    """Base class: the rule set cannot be compiled."""

    kind = "compile_error"

    def __init__(self, message: str, rule_ids: Sequence[str] = ()):
        self.rule_ids: List[str] = list(rule_ids)
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "rule_ids": list(self.rule_ids), "message": str(self)}


class DanglingFieldReference(CompileError):
    """
    A rule references a field (or navigation target) missing from the schema.

    Attributes:
        rule_id: Offending rule.
        field_id: Unknown id.
        role: Where the reference appears: "condition", "action",
            "expression" or "navigation".
    """

    kind = "dangling_field_reference"

    def __init__(self, rule_id: str, field_id: str, role: str = "condition"):
        self.rule_id = rule_id
        self.field_id = field_id
        self.role = role
        super().__init__(
            f"Rule '{rule_id}' references unknown {role} target '{field_id}'",
            [rule_id],
        )


class CyclicDependency(CompileError):
    """Rules feed each other's conditions in a loop."""

    kind = "cyclic_dependency"

    def __init__(self, rule_ids: Sequence[str]):
        chain = " -> ".join(list(rule_ids) + list(rule_ids[:1]))
        super().__init__(f"Cyclic dependency between rules: {chain}", rule_ids)


class EmptyConditionGroup(CompileError):
    kind = "empty_condition_group"

    def __init__(self, rule_id: str, group_id: str):
        self.rule_id = rule_id
        self.group_id = group_id
        super().__init__(f"Rule '{rule_id}' has empty condition group '{group_id}'", [rule_id])


class MalformedExpression(CompileError):
    """A calculate action's expression is missing or outside the grammar."""

    kind = "malformed_expression"

    def __init__(self, rule_id: str, action_id: str, detail: str):
        self.rule_id = rule_id
        self.action_id = action_id
        self.detail = detail
        super().__init__(
            f"Rule '{rule_id}' action '{action_id}' has a malformed calculation: {detail}",
            [rule_id],
        )


class RuleSetTooLarge(CompileError):
    kind = "rule_set_too_large"

    def __init__(self, count: int, limit: int, rule_ids: Optional[Sequence[str]] = None):
        self.count = count
        self.limit = limit
        super().__init__(f"{count} enabled rules exceed the limit of {limit}", rule_ids or ())


__all__ = [
    "CompileError",
    "DanglingFieldReference",
    "CyclicDependency",
    "EmptyConditionGroup",
    "MalformedExpression",
    "RuleSetTooLarge",
]
