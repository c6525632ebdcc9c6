# assembly_core/tasks.py
from __future__ import annotations

from celery import shared_task

from assembly_core.workflows.overdue import flag_overdue_assignments


@shared_task
def scan_overdue_assignments() -> int:
    return flag_overdue_assignments()
