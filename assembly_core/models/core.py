# assembly_core/models/core.py

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from assembly_core.workflows.guards import AppendOnlyMixin, StatusWriteGuardMixin
from assembly_core.workflows.states import (
    ACTIVE_ASSIGNMENT_STATUSES,
    AssignmentStatus,
    CycleStatus,
    Priority,
    ProfileStatus,
    RoleName,
)


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ============================================================
# Roles
# ============================================================
class Role(models.Model):
    """Authorization tag. Owns no data."""

    name = models.CharField(max_length=20, choices=RoleName.choices, unique=True)
    description = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


# ============================================================
# Profiles
# ============================================================
class Profile(TimeStampedModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    full_name = models.CharField(max_length=255)
    user_code = models.CharField(max_length=20, unique=True, db_index=True)
    role = models.ForeignKey(Role, on_delete=models.PROTECT, related_name="profiles")
    status = models.CharField(
        max_length=10,
        choices=ProfileStatus.choices,
        default=ProfileStatus.ACTIVE,
        db_index=True,
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.user_code} - {self.full_name}"

    @property
    def role_name(self) -> str:
        return self.role.name

    @property
    def is_active(self) -> bool:
        return self.status == ProfileStatus.ACTIVE


# ============================================================
# Cycles
# ============================================================
class Cycle(StatusWriteGuardMixin, TimeStampedModel):
    """One manufactured unit, tracked from creation to dispatch."""

    STATUS_FIELD = "status"

    serial_number = models.CharField(max_length=100, unique=True, db_index=True)
    model = models.CharField(max_length=100)
    variant = models.CharField(max_length=100, blank=True)
    color = models.CharField(max_length=50, blank=True)
    status = models.CharField(
        max_length=30,
        choices=CycleStatus.choices,
        default=CycleStatus.PENDING,
        db_index=True,
        editable=False,
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.NORMAL,
        db_index=True,
    )
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        Profile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cycles_created",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                name="cycle_serial_not_blank",
                condition=~Q(serial_number=""),
            ),
        ]
        indexes = [
            models.Index(fields=["status", "priority"], name="cycle_status_priority_idx"),
        ]

    def __str__(self):
        return f"{self.serial_number} ({self.status})"

    @property
    def active_assignment(self):
        return (
            self.assignments.filter(status__in=ACTIVE_ASSIGNMENT_STATUSES)
            .select_related("technician")
            .first()
        )


# ============================================================
# Assignments
# ============================================================
class Assignment(TimeStampedModel):
    """One technician's work attempt on a cycle."""

    cycle = models.ForeignKey(Cycle, on_delete=models.CASCADE, related_name="assignments")
    technician = models.ForeignKey(
        Profile,
        on_delete=models.PROTECT,
        related_name="assignments",
    )
    assigned_by = models.ForeignKey(
        Profile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assignments_made",
    )
    status = models.CharField(
        max_length=20,
        choices=AssignmentStatus.choices,
        default=AssignmentStatus.PENDING,
        db_index=True,
    )
    assigned_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True, db_index=True)
    reassignment_reason = models.TextField(blank=True)

    class Meta:
        ordering = ["assigned_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["cycle"],
                condition=Q(status__in=sorted(ACTIVE_ASSIGNMENT_STATUSES)),
                name="one_active_assignment_per_cycle",
            ),
        ]

    def __str__(self):
        return f"{self.cycle.serial_number} -> {self.technician.user_code} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_ASSIGNMENT_STATUSES

    def clean(self):
        if self.technician_id and self.technician.role.name != RoleName.TECHNICIAN:
            raise ValidationError("Assignments can only target technicians.")


# ============================================================
# Cycle timeline
# ============================================================
class CycleEvent(AppendOnlyMixin, models.Model):
    """
    Immutable timeline of cycle status changes.
    """

    cycle = models.ForeignKey(Cycle, on_delete=models.CASCADE, related_name="events")
    from_status = models.CharField(max_length=30, blank=True)
    to_status = models.CharField(max_length=30)
    performed_by = models.ForeignKey(
        Profile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cycle_events",
    )
    role = models.CharField(max_length=20)
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["cycle", "created_at"], name="cycle_event_time_idx"),
        ]

    def __str__(self):
        who = self.performed_by.user_code if self.performed_by else "system"
        return f"{self.cycle_id}: {self.from_status or 'none'} → {self.to_status} by {who}"
