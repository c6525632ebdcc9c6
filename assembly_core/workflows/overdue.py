# assembly_core/workflows/overdue.py
from __future__ import annotations

import datetime
import logging
from typing import Optional

from django.utils import timezone

from assembly_core.models import Assignment, AuditLog
from assembly_core.services.audit import record_audit
from assembly_core.workflows.states import ACTIVE_ASSIGNMENT_STATUSES

logger = logging.getLogger(__name__)

OVERDUE_ACTION = "ASSIGNMENT_OVERDUE"


def find_overdue_assignments(today: Optional[datetime.date] = None):
    today = today or timezone.localdate()
    return (
        Assignment.objects.select_related("cycle", "technician")
        .filter(status__in=ACTIVE_ASSIGNMENT_STATUSES, due_date__lt=today)
        .order_by("due_date", "id")
    )


def flag_overdue_assignments(today: Optional[datetime.date] = None) -> int:
    """
    Write one audit entry per overdue active assignment and due date.
    Moving the due date makes the assignment eligible again.

    Returns:
        int: number of newly flagged assignments
    """
    today = today or timezone.localdate()
    flagged = 0

    for assignment in find_overdue_assignments(today).iterator():
        already = AuditLog.objects.filter(
            action=OVERDUE_ACTION,
            table_name="assignments",
            record_id=str(assignment.pk),
            new_values__due_date=assignment.due_date.isoformat(),
        ).exists()
        if already:
            continue

        logger.warning(
            "Assignment #%s for cycle %s (%s) is overdue since %s",
            assignment.pk,
            assignment.cycle.serial_number,
            assignment.technician.user_code,
            assignment.due_date,
        )
        entry = record_audit(
            actor=None,
            action=OVERDUE_ACTION,
            table_name="assignments",
            record_id=assignment.pk,
            new_values={
                "cycle_id": assignment.cycle_id,
                "technician": assignment.technician.user_code,
                "due_date": assignment.due_date.isoformat(),
                "detected_on": today.isoformat(),
            },
        )
        if entry is not None:
            flagged += 1

    return flagged
