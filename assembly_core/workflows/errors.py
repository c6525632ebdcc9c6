# assembly_core/workflows/errors.py
from __future__ import annotations

from typing import Optional


class WorkflowError(Exception):
    """
    Base class for every rejection raised by the cycle workflow.

    `rule` names the violated rule so callers can show a precise message.
    """

    code = "workflow_error"

    def __init__(self, message: str, *, rule: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.rule = rule or self.code

    def as_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, "rule": self.rule}


class InvalidTransition(WorkflowError):
    code = "invalid_transition"


class UnauthorizedRole(WorkflowError):
    code = "unauthorized_role"


class TerminalStateViolation(WorkflowError):
    code = "terminal_state"


class ConflictingActiveAssignment(WorkflowError):
    code = "conflicting_active_assignment"


class TransientError(WorkflowError):
    """Storage or network failure. Safe to retry."""

    code = "transient_error"


class InvalidQcResult(WorkflowError):
    code = "invalid_qc_result"


class InactiveProfile(WorkflowError):
    code = "inactive_profile"


class ChecklistIncomplete(WorkflowError):
    code = "checklist_incomplete"


__all__ = [
    "WorkflowError",
    "InvalidTransition",
    "UnauthorizedRole",
    "TerminalStateViolation",
    "ConflictingActiveAssignment",
    "TransientError",
    "InvalidQcResult",
    "InactiveProfile",
    "ChecklistIncomplete",
]
