# assembly_core/workflows/executor.py
"""
Authoritative cycle status writer.

All cycle status changes go through move_cycle(). Never update status
directly in views or serializers.
"""

from __future__ import annotations

import logging
from typing import Optional

from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from assembly_core.models import Cycle, CycleEvent, Profile
from assembly_core.services.audit import record_audit
from assembly_core.services.db import translate_db_errors
from assembly_core.workflows import (
    INITIAL_STATE,
    enforce_transition,
    is_terminal,
    normalize_status,
)
from assembly_core.workflows.errors import InvalidTransition, TerminalStateViolation
from assembly_core.workflows.states import CycleStatus, Priority

logger = logging.getLogger(__name__)


# Edges that need extra input and are owned by a dedicated operation.
DEDICATED_OPERATIONS = {
    (CycleStatus.PENDING.value, CycleStatus.ASSIGNED.value): "create_assignment",
    (CycleStatus.ASSIGNED.value, CycleStatus.IN_PROGRESS.value): "transition_on_work_event(start)",
    (CycleStatus.IN_PROGRESS.value, CycleStatus.QC_PENDING.value): "transition_on_work_event(complete)",
    (CycleStatus.QC_PENDING.value, CycleStatus.QC_PASSED.value): "apply_qc_result",
    (CycleStatus.QC_PENDING.value, CycleStatus.QC_FAILED.value): "apply_qc_result",
    (CycleStatus.QC_FAILED.value, CycleStatus.QC_PASSED.value): "apply_qc_result",
    (CycleStatus.QC_FAILED.value, CycleStatus.QC_FAILED.value): "apply_qc_result",
    (CycleStatus.QC_PASSED.value, CycleStatus.READY_FOR_DISPATCH.value): "apply_qc_result",
}


def lock_cycle(cycle_id) -> Cycle:
    """
    Fetch a cycle row for update. Must be called inside transaction.atomic().
    """
    return get_object_or_404(Cycle.objects.select_for_update(), pk=cycle_id)


def ensure_not_terminal(cycle: Cycle) -> None:
    if is_terminal(cycle.status):
        raise TerminalStateViolation(
            f"Cycle {cycle.serial_number} is in terminal state '{cycle.status}' "
            "and cannot be modified.",
            rule=f"terminal:{cycle.status}",
        )


def write_status(
    cycle: Cycle,
    target: str,
    *,
    role: str,
    performed_by: Optional[Profile],
    comment: str = "",
) -> CycleEvent:
    """
    Persist a status change and its timeline row. No rule checks here:
    callers validate first. Must run inside transaction.atomic().
    """
    current = cycle.status
    target = normalize_status(target)

    # Queryset update bypasses the save() write guard on Cycle.status.
    Cycle.objects.filter(pk=cycle.pk).update(status=target, updated_at=timezone.now())
    cycle.status = target

    event = CycleEvent.objects.create(
        cycle=cycle,
        from_status=current or "",
        to_status=target,
        performed_by=performed_by,
        role=role,
        comment=comment or "",
    )

    logger.info(
        "Cycle %s: %s -> %s by %s (%s)",
        cycle.serial_number,
        current or "none",
        target,
        performed_by.user_code if performed_by else "system",
        role,
    )
    return event


def move_cycle(
    cycle: Cycle,
    target: str,
    *,
    role: str,
    performed_by: Optional[Profile],
    comment: str = "",
) -> CycleEvent:
    """
    Validate current -> target for the role, then write it.
    """
    enforce_transition(cycle.pk, cycle.status, target, role)
    return write_status(
        cycle,
        target,
        role=role,
        performed_by=performed_by,
        comment=comment,
    )


# ===============================================================
# Cycle creation / dispatch
# ===============================================================

@translate_db_errors
def create_cycle(
    ctx,
    *,
    serial_number: str,
    model: str,
    variant: str = "",
    color: str = "",
    priority: str = Priority.NORMAL,
    notes: str = "",
) -> Cycle:
    enforce_transition(None, None, INITIAL_STATE, ctx.role)

    serial_number = serial_number.strip()

    with transaction.atomic():
        try:
            with transaction.atomic():
                cycle = Cycle.objects.create(
                    serial_number=serial_number,
                    model=model,
                    variant=variant or "",
                    color=color or "",
                    priority=priority or Priority.NORMAL,
                    notes=notes or "",
                    created_by=ctx.profile,
                )
        except IntegrityError:
            # Lost a race with a concurrent create of the same serial.
            if Cycle.objects.filter(serial_number=serial_number).exists():
                raise ValidationError(
                    {"serial_number": "A cycle with this serial number already exists."}
                )
            raise

        CycleEvent.objects.create(
            cycle=cycle,
            from_status="",
            to_status=cycle.status,
            performed_by=ctx.profile,
            role=ctx.role,
            comment="Cycle created",
        )
        record_audit(
            actor=ctx,
            action="INSERT",
            table_name="cycles",
            record_id=cycle.pk,
            new_values={
                "serial_number": cycle.serial_number,
                "model": cycle.model,
                "priority": cycle.priority,
                "status": cycle.status,
            },
        )

    logger.info("Cycle %s created by %s", cycle.serial_number, ctx.user_code)
    return cycle


@translate_db_errors
def dispatch_cycle(ctx, cycle_id, notes: Optional[str] = None) -> Cycle:
    with transaction.atomic():
        cycle = lock_cycle(cycle_id)
        previous = cycle.status

        move_cycle(
            cycle,
            CycleStatus.DISPATCHED,
            role=ctx.role,
            performed_by=ctx.profile,
            comment=notes or "Dispatch confirmed",
        )
        if notes:
            Cycle.objects.filter(pk=cycle.pk).update(notes=notes)
            cycle.notes = notes

        record_audit(
            actor=ctx,
            action="DISPATCH",
            table_name="cycles",
            record_id=cycle.pk,
            old_values={"status": previous},
            new_values={"status": cycle.status, "notes": notes},
            reason=notes or "",
        )

    return cycle


# ===============================================================
# Generic transition entry point
# ===============================================================

@translate_db_errors
def execute_transition(ctx, cycle_id, to_status: str, comment: str = "") -> Cycle:
    """
    Status-only transition entry point.

    Only dispatch needs nothing beyond the target status. Every other edge
    is owned by a compound operation (assignment, work events, QC); those are
    still validated here so the caller gets the precise rejection, and an
    allowed edge is answered with a pointer to its operation.
    """
    target = normalize_status(to_status)

    if target == CycleStatus.DISPATCHED:
        return dispatch_cycle(ctx, cycle_id, notes=comment or None)

    cycle = get_object_or_404(Cycle, pk=cycle_id)
    enforce_transition(cycle.pk, cycle.status, target, ctx.role)

    operation = DEDICATED_OPERATIONS[(cycle.status, target)]
    raise InvalidTransition(
        f"Transition {cycle.status} -> {target} must go through {operation}.",
        rule=f"operation:{operation}",
    )
