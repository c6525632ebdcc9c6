# assembly_core/tests/test_overdue.py

import datetime
from io import StringIO

import pytest
from django.core.management import call_command

from assembly_core.models import AuditLog
from assembly_core.tasks import scan_overdue_assignments
from assembly_core.workflows.assignments import (
    complete_assembly,
    create_assignment,
    set_due_date,
    start_assembly,
)
from assembly_core.workflows.overdue import (
    OVERDUE_ACTION,
    find_overdue_assignments,
    flag_overdue_assignments,
)

pytestmark = pytest.mark.django_db

TODAY = datetime.date(2026, 3, 10)


@pytest.fixture
def late_assignment(cycle_factory, supervisor_profile, technician_profile, actor):
    cycle = cycle_factory(serial_number="SN-LATE-1")
    return create_assignment(
        actor(supervisor_profile),
        cycle.pk,
        technician_profile.pk,
        due_date=TODAY - datetime.timedelta(days=2),
    )


def test_only_active_past_due_assignments_are_overdue(
    late_assignment, cycle_factory, supervisor_profile, other_technician, actor
):
    on_time = create_assignment(
        actor(supervisor_profile),
        cycle_factory().pk,
        other_technician.pk,
        due_date=TODAY,
    )

    overdue = list(find_overdue_assignments(TODAY))
    assert overdue == [late_assignment]
    assert on_time not in overdue


def test_completed_assignments_are_not_overdue(late_assignment, technician_profile, actor):
    start_assembly(actor(technician_profile), late_assignment.pk)
    complete_assembly(actor(technician_profile), late_assignment.pk)
    assert not find_overdue_assignments(TODAY).exists()


def test_flagging_writes_one_audit_row_per_assignment(late_assignment):
    assert flag_overdue_assignments(TODAY) == 1
    assert flag_overdue_assignments(TODAY + datetime.timedelta(days=1)) == 0

    entry = AuditLog.objects.get(action=OVERDUE_ACTION)
    assert entry.user is None
    assert entry.record_id == str(late_assignment.pk)
    assert entry.new_values["due_date"] == "2026-03-08"
    assert entry.new_values["detected_on"] == "2026-03-10"


def test_moved_due_date_is_flagged_again_when_missed(late_assignment, supervisor_profile, actor):
    assert flag_overdue_assignments(TODAY) == 1

    set_due_date(actor(supervisor_profile), late_assignment.pk, TODAY + datetime.timedelta(days=1))
    assert flag_overdue_assignments(TODAY + datetime.timedelta(days=1)) == 0
    assert flag_overdue_assignments(TODAY + datetime.timedelta(days=5)) == 1
    assert flag_overdue_assignments(TODAY + datetime.timedelta(days=6)) == 0

    due_dates = sorted(e.new_values["due_date"] for e in AuditLog.objects.filter(action=OVERDUE_ACTION))
    assert due_dates == ["2026-03-08", "2026-03-11"]


def test_command_dry_run_writes_nothing(late_assignment):
    out = StringIO()
    call_command("check_overdue_assignments", "--date", "2026-03-10", "--dry-run", stdout=out)

    assert "SN-LATE-1" in out.getvalue()
    assert not AuditLog.objects.filter(action=OVERDUE_ACTION).exists()


def test_command_flags(late_assignment):
    out = StringIO()
    call_command("check_overdue_assignments", "--date", "2026-03-10", stdout=out)
    assert "Flagged 1 overdue assignment(s)." in out.getvalue()


def test_command_rejects_bad_date():
    from django.core.management.base import CommandError

    with pytest.raises(CommandError):
        call_command("check_overdue_assignments", "--date", "10/03/2026")


def test_scan_task_uses_current_date(late_assignment):
    assert scan_overdue_assignments() == 1
