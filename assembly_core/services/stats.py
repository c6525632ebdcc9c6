# assembly_core/services/stats.py
from __future__ import annotations

from typing import Any, Dict

from django.db.models import Count

from assembly_core.models import Assignment, Cycle, Profile
from assembly_core.workflows.states import (
    ACTIVE_ASSIGNMENT_STATUSES,
    CycleStatus,
    ProfileStatus,
)


def dashboard_stats() -> Dict[str, Any]:
    """
    Headline counts for the admin dashboard.

    Every cycle status appears in cycles_by_status, zero-filled.
    """
    by_status = {status: 0 for status in CycleStatus.values}
    for row in Cycle.objects.order_by().values("status").annotate(n=Count("id")):
        by_status[row["status"]] = row["n"]

    return {
        "total_users": Profile.objects.count(),
        "active_users": Profile.objects.filter(status=ProfileStatus.ACTIVE).count(),
        "total_cycles": sum(by_status.values()),
        "pending_qc": by_status[CycleStatus.QC_PENDING.value],
        "active_assignments": Assignment.objects.filter(
            status__in=ACTIVE_ASSIGNMENT_STATUSES
        ).count(),
        "cycles_by_status": by_status,
    }
