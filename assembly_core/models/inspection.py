# assembly_core/models/inspection.py

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from assembly_core.workflows.guards import AppendOnlyMixin
from assembly_core.workflows.states import QcResult

from .core import Cycle, Profile


class QcLog(AppendOnlyMixin, models.Model):
    """One inspection record per cycle per inspection event. Immutable."""

    cycle = models.ForeignKey(Cycle, on_delete=models.CASCADE, related_name="qc_logs")
    inspector = models.ForeignKey(
        Profile,
        on_delete=models.PROTECT,
        related_name="qc_logs",
    )
    result = models.CharField(max_length=10, choices=QcResult.choices, db_index=True)
    overall_score = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    defects_found = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    photos = models.JSONField(default=list, blank=True)
    is_override = models.BooleanField(default=False, db_index=True)
    inspected_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-inspected_at", "-id"]
        constraints = [
            models.CheckConstraint(
                name="qc_score_in_range",
                condition=Q(overall_score__isnull=True) | Q(overall_score__lte=100),
            ),
        ]

    def __str__(self):
        tag = " (override)" if self.is_override else ""
        return f"{self.cycle.serial_number}: {self.result}{tag}"


class AuditLog(AppendOnlyMixin, models.Model):
    """Track security-sensitive actions for traceability. Append-only."""

    user = models.ForeignKey(
        Profile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
        db_index=True,
    )
    action = models.CharField(max_length=64, db_index=True)
    table_name = models.CharField(max_length=64, db_index=True)
    record_id = models.CharField(max_length=64, blank=True, db_index=True)
    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["table_name", "record_id"], name="audit_record_idx"),
            models.Index(fields=["action", "created_at"], name="audit_action_time_idx"),
        ]

    def __str__(self):
        who = self.user.user_code if self.user else "system"
        return f"{self.created_at} - {who} - {self.action} {self.table_name}:{self.record_id}"
