"""Authoring audits and debugging reports for compiled rule sets."""

from formlogic.evaluation.audits import AuditResult, run_audits
from formlogic.evaluation.reports import (
    rules_frame,
    dependency_frame,
    state_frame,
    trace_frame,
    warnings_frame,
    audit_frame,
)

__all__ = [
    "AuditResult",
    "run_audits",
    "rules_frame",
    "dependency_frame",
    "state_frame",
    "trace_frame",
    "warnings_frame",
    "audit_frame",
]
