# assembly_core/workflows/assignments.py
"""
Technician assignment lifecycle.

    pending -> in_progress -> completed
    pending | in_progress -> reassigned

A cycle has at most one assignment in {pending, in_progress}. Every compound
operation here runs in one transaction with the cycle row locked.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone

from assembly_core.models import Assignment, Profile
from assembly_core.services.audit import record_audit
from assembly_core.services.db import translate_db_errors
from assembly_core.workflows import (
    enforce_transition,
    normalize_status,
    validate_reassignment,
)
from assembly_core.workflows.checklists import (
    attach_default_checklists,
    enforce_checklist_gate,
)
from assembly_core.workflows.errors import (
    ConflictingActiveAssignment,
    InactiveProfile,
    InvalidTransition,
    UnauthorizedRole,
)
from assembly_core.workflows.executor import (
    ensure_not_terminal,
    lock_cycle,
    move_cycle,
    write_status,
)
from assembly_core.workflows.states import (
    ACTIVE_ASSIGNMENT_STATUSES,
    AssignmentStatus,
    CycleStatus,
    RoleName,
    WorkEvent,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkEventOutcome:
    assignment: Assignment
    assignment_status: str
    cycle_status: str


def _require_assignable_technician(technician_id) -> Profile:
    technician = get_object_or_404(
        Profile.objects.select_related("role"),
        pk=technician_id,
    )
    if technician.role.name != RoleName.TECHNICIAN:
        raise UnauthorizedRole(
            f"Profile {technician.user_code} is not a technician and cannot be assigned work.",
            rule="assignee:not_technician",
        )
    if not technician.is_active:
        raise InactiveProfile(
            f"Technician {technician.user_code} is inactive and cannot be assigned work.",
            rule="assignee:inactive",
        )
    return technician


def _active_assignment(cycle) -> Optional[Assignment]:
    return (
        Assignment.objects.select_for_update()
        .filter(cycle=cycle, status__in=ACTIVE_ASSIGNMENT_STATUSES)
        .first()
    )


# ===============================================================
# Assign
# ===============================================================

@translate_db_errors
def create_assignment(
    ctx,
    cycle_id,
    technician_id,
    due_date: Optional[datetime.date] = None,
) -> Assignment:
    """
    Assign a pending cycle to a technician. Fails if the cycle already has
    an active assignment; use reassign_cycle for that.
    """
    with transaction.atomic():
        cycle = lock_cycle(cycle_id)
        ensure_not_terminal(cycle)

        active = _active_assignment(cycle)
        if active is not None:
            raise ConflictingActiveAssignment(
                f"Cycle {cycle.serial_number} already has an active assignment "
                f"(#{active.pk}, {active.status}). Use reassignment instead.",
                rule="assignment:active_exists",
            )

        enforce_transition(cycle.pk, cycle.status, CycleStatus.ASSIGNED, ctx.role)
        technician = _require_assignable_technician(technician_id)

        assignment = Assignment.objects.create(
            cycle=cycle,
            technician=technician,
            assigned_by=ctx.profile,
            status=AssignmentStatus.PENDING,
            due_date=due_date,
        )

        move_cycle(
            cycle,
            CycleStatus.ASSIGNED,
            role=ctx.role,
            performed_by=ctx.profile,
            comment=f"Assigned to {technician.user_code}",
        )

        attach_default_checklists(cycle)

        record_audit(
            actor=ctx,
            action="INSERT",
            table_name="assignments",
            record_id=assignment.pk,
            new_values={
                "cycle_id": cycle.pk,
                "technician": technician.user_code,
                "due_date": due_date.isoformat() if due_date else None,
            },
        )

    return assignment


# ===============================================================
# Reassign
# ===============================================================

@translate_db_errors
def reassign_cycle(
    ctx,
    active_assignment_id,
    new_technician_id,
    reason: Optional[str] = None,
    due_date: Optional[datetime.date] = None,
) -> Assignment:
    """
    Compound action, all or nothing:
      1) mark the active assignment reassigned
      2) insert a new pending assignment
      3) reset the cycle to assigned
    """
    with transaction.atomic():
        old = get_object_or_404(Assignment, pk=active_assignment_id)
        cycle = lock_cycle(old.cycle_id)
        old = Assignment.objects.select_for_update().select_related("technician").get(pk=old.pk)

        if old.status not in ACTIVE_ASSIGNMENT_STATUSES:
            raise InvalidTransition(
                f"Assignment #{old.pk} is {old.status}; only active assignments can be reassigned.",
                rule="assignment:not_active",
            )

        validate_reassignment(cycle.pk, cycle.status, ctx.role).raise_if_rejected()
        technician = _require_assignable_technician(new_technician_id)

        previous_status = cycle.status
        old.status = AssignmentStatus.REASSIGNED
        old.reassignment_reason = reason or ""
        old.save(update_fields=["status", "reassignment_reason", "updated_at"])

        new = Assignment.objects.create(
            cycle=cycle,
            technician=technician,
            assigned_by=ctx.profile,
            status=AssignmentStatus.PENDING,
            due_date=due_date if due_date is not None else old.due_date,
        )

        comment = f"Reassigned from {old.technician.user_code} to {technician.user_code}"
        if previous_status != CycleStatus.ASSIGNED:
            write_status(
                cycle,
                CycleStatus.ASSIGNED,
                role=ctx.role,
                performed_by=ctx.profile,
                comment=comment,
            )

        record_audit(
            actor=ctx,
            action="REASSIGN",
            table_name="assignments",
            record_id=new.pk,
            old_values={
                "assignment_id": old.pk,
                "technician": old.technician.user_code,
                "cycle_status": previous_status,
            },
            new_values={
                "assignment_id": new.pk,
                "technician": technician.user_code,
                "cycle_status": cycle.status,
            },
            reason=reason or "",
        )

    logger.info("%s (cycle %s)", comment, cycle.serial_number)
    return new


# ===============================================================
# Work events
# ===============================================================

@translate_db_errors
def transition_on_work_event(ctx, assignment_id, event: str) -> WorkEventOutcome:
    """
    start:    assignment pending -> in_progress, cycle assigned -> in_progress
    complete: assignment in_progress -> completed, cycle in_progress -> qc_pending

    Only the technician who owns the assignment may act on it.
    """
    event = normalize_status(event)
    if event not in WorkEvent.values:
        raise InvalidTransition(
            f"Unknown work event: {event or '<blank>'}",
            rule="event:unknown",
        )

    with transaction.atomic():
        found = get_object_or_404(Assignment, pk=assignment_id)
        cycle = lock_cycle(found.cycle_id)
        assignment = Assignment.objects.select_for_update().get(pk=found.pk)
        ensure_not_terminal(cycle)

        if assignment.technician_id != ctx.profile_id:
            raise UnauthorizedRole(
                f"Assignment #{assignment.pk} is not owned by {ctx.user_code}.",
                rule="assignment:owner",
            )

        now = timezone.now()

        if event == WorkEvent.START:
            if assignment.status != AssignmentStatus.PENDING:
                raise InvalidTransition(
                    f"Assignment #{assignment.pk} is {assignment.status}; start requires pending.",
                    rule="assignment:start",
                )
            enforce_transition(cycle.pk, cycle.status, CycleStatus.IN_PROGRESS, ctx.role)

            assignment.status = AssignmentStatus.IN_PROGRESS
            assignment.started_at = now
            assignment.save(update_fields=["status", "started_at", "updated_at"])
            target = CycleStatus.IN_PROGRESS
        else:
            if assignment.status != AssignmentStatus.IN_PROGRESS:
                raise InvalidTransition(
                    f"Assignment #{assignment.pk} is {assignment.status}; complete requires in_progress.",
                    rule="assignment:complete",
                )
            enforce_transition(cycle.pk, cycle.status, CycleStatus.QC_PENDING, ctx.role)
            enforce_checklist_gate(cycle)

            assignment.status = AssignmentStatus.COMPLETED
            assignment.completed_at = now
            assignment.save(update_fields=["status", "completed_at", "updated_at"])
            target = CycleStatus.QC_PENDING

        move_cycle(
            cycle,
            target,
            role=ctx.role,
            performed_by=ctx.profile,
            comment=f"Work {event} on assignment #{assignment.pk}",
        )

    return WorkEventOutcome(
        assignment=assignment,
        assignment_status=assignment.status,
        cycle_status=cycle.status,
    )


def start_assembly(ctx, assignment_id) -> WorkEventOutcome:
    return transition_on_work_event(ctx, assignment_id, WorkEvent.START)


def complete_assembly(ctx, assignment_id) -> WorkEventOutcome:
    return transition_on_work_event(ctx, assignment_id, WorkEvent.COMPLETE)


# ===============================================================
# Due dates
# ===============================================================

@translate_db_errors
def set_due_date(ctx, assignment_id, due_date: Optional[datetime.date]) -> Assignment:
    if ctx.role not in {RoleName.SUPERVISOR.value, RoleName.ADMIN.value}:
        raise UnauthorizedRole(
            f"Role '{ctx.role}' cannot change due dates.",
            rule="role:due_date",
        )

    with transaction.atomic():
        assignment = get_object_or_404(Assignment.objects.select_for_update(), pk=assignment_id)
        if assignment.status not in ACTIVE_ASSIGNMENT_STATUSES:
            raise InvalidTransition(
                f"Assignment #{assignment.pk} is {assignment.status}; due dates are fixed once closed.",
                rule="assignment:due_date_closed",
            )
        assignment.due_date = due_date
        assignment.save(update_fields=["due_date", "updated_at"])

    return assignment
