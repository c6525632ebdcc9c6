# assembly_core/exceptions.py
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .workflows.errors import (
    ChecklistIncomplete,
    ConflictingActiveAssignment,
    InactiveProfile,
    InvalidQcResult,
    InvalidTransition,
    TerminalStateViolation,
    TransientError,
    UnauthorizedRole,
    WorkflowError,
)

logger = logging.getLogger(__name__)


WORKFLOW_ERROR_STATUS = {
    InvalidTransition: status.HTTP_400_BAD_REQUEST,
    InvalidQcResult: status.HTTP_400_BAD_REQUEST,
    ChecklistIncomplete: status.HTTP_400_BAD_REQUEST,
    UnauthorizedRole: status.HTTP_403_FORBIDDEN,
    InactiveProfile: status.HTTP_403_FORBIDDEN,
    TerminalStateViolation: status.HTTP_409_CONFLICT,
    ConflictingActiveAssignment: status.HTTP_409_CONFLICT,
    TransientError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

RETRY_AFTER_SECONDS = 5


def status_for(exc: WorkflowError) -> int:
    for klass in type(exc).__mro__:
        if klass in WORKFLOW_ERROR_STATUS:
            return WORKFLOW_ERROR_STATUS[klass]
    return status.HTTP_400_BAD_REQUEST


def workflow_exception_handler(exc, context):
    """
    REST_FRAMEWORK["EXCEPTION_HANDLER"].

    Workflow rejections become {"detail", "code", "rule"} with a stable
    HTTP status. Everything else goes through DRF's default handler.
    """
    if not isinstance(exc, WorkflowError):
        return drf_exception_handler(exc, context)

    http_status = status_for(exc)
    view = context.get("view")
    logger.warning(
        "Rejected %s in %s: %s [%s]",
        exc.code,
        view.__class__.__name__ if view is not None else "unknown view",
        exc.message,
        exc.rule,
    )

    response = Response(exc.as_dict(), status=http_status)
    if isinstance(exc, TransientError):
        response["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return response
