# assembly_core/workflows/states.py
"""
Canonical vocabularies shared by the workflow engine and the models.

These are TextChoices so the models can use them directly as field choices,
while the workflow engine keeps comparing plain strings.
"""

from django.db import models


class RoleName(models.TextChoices):
    ADMIN = "admin", "Admin"
    SUPERVISOR = "supervisor", "Supervisor"
    TECHNICIAN = "technician", "Technician"
    QC = "qc", "Quality Control"
    SALES = "sales", "Sales"


# Pseudo-actor used for automatic edges. Never stored on a Profile.
SYSTEM_ACTOR = "system"


class CycleStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ASSIGNED = "assigned", "Assigned"
    IN_PROGRESS = "in_progress", "In Progress"
    QC_PENDING = "qc_pending", "Pending QC"
    QC_PASSED = "qc_passed", "QC Passed"
    QC_FAILED = "qc_failed", "QC Failed"
    READY_FOR_DISPATCH = "ready_for_dispatch", "Ready for Dispatch"
    DISPATCHED = "dispatched", "Dispatched"


class Priority(models.TextChoices):
    LOW = "low", "Low"
    NORMAL = "normal", "Normal"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class AssignmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    REASSIGNED = "reassigned", "Reassigned"


ACTIVE_ASSIGNMENT_STATUSES = frozenset(
    {AssignmentStatus.PENDING.value, AssignmentStatus.IN_PROGRESS.value}
)


class ProfileStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class QcResult(models.TextChoices):
    PASSED = "passed", "Passed"
    FAILED = "failed", "Failed"


class ChecklistType(models.TextChoices):
    TECHNICIAN_ASSEMBLY = "technician_assembly", "Technician assembly"
    SUPERVISOR_REVIEW = "supervisor_review", "Supervisor review"
    QC_INSPECTION = "qc_inspection", "QC inspection"


class WorkEvent(models.TextChoices):
    START = "start", "Start"
    COMPLETE = "complete", "Complete"
