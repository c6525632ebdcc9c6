# assembly_core/tests/test_qc.py

import pytest

from assembly_core.models import AuditLog, CycleEvent, QcLog
from assembly_core.workflows.errors import (
    InvalidQcResult,
    InvalidTransition,
    TerminalStateViolation,
    UnauthorizedRole,
)
from assembly_core.workflows.executor import dispatch_cycle
from assembly_core.workflows.qc import apply_qc_result, normalize_qc_result


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("pass", "passed"),
        ("passed", "passed"),
        ("PASS", "passed"),
        (" Passed ", "passed"),
        ("fail", "failed"),
        ("failed", "failed"),
        ("FAILED", "failed"),
    ],
)
def test_normalize_qc_result(raw, expected):
    assert normalize_qc_result(raw) == expected
    # Normalized values are fixed points.
    assert normalize_qc_result(expected) == expected


@pytest.mark.parametrize("raw", ["", None, "ok", "passing", "rejected"])
def test_unknown_qc_results_are_rejected(raw):
    with pytest.raises(InvalidQcResult):
        normalize_qc_result(raw)


@pytest.mark.django_db
def test_pass_auto_advances_to_ready_for_dispatch(cycle_in_qc, qc_profile, actor):
    outcome = apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "pass", score=92)

    assert outcome.previous_status == "qc_pending"
    assert outcome.new_status == "ready_for_dispatch"
    assert outcome.qc_log.result == "passed"
    assert outcome.qc_log.overall_score == 92
    assert outcome.qc_log.is_override is False

    trail = list(
        CycleEvent.objects.filter(cycle=cycle_in_qc).values_list("to_status", "role")
    )[-2:]
    assert trail == [("qc_passed", "qc"), ("ready_for_dispatch", "system")]


@pytest.mark.django_db
def test_reapplying_pass_is_rejected(cycle_in_qc, qc_profile, actor):
    apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "passed")

    with pytest.raises(InvalidTransition):
        apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "pass")

    assert QcLog.objects.filter(cycle=cycle_in_qc).count() == 1


@pytest.mark.django_db
def test_fail_records_defects(cycle_in_qc, qc_profile, actor):
    outcome = apply_qc_result(
        actor(qc_profile),
        cycle_in_qc.pk,
        "FAIL",
        score="40",
        defects=["loose chain", "scratched frame", "  "],
        notes="Send back",
    )
    assert outcome.new_status == "qc_failed"
    assert outcome.qc_log.defects_found == ["loose chain", "scratched frame"]
    assert outcome.qc_log.overall_score == 40


@pytest.mark.django_db
@pytest.mark.parametrize("score", [-1, 101, 55.5, "abc", True])
def test_score_must_be_whole_number_in_range(cycle_in_qc, qc_profile, actor, score):
    with pytest.raises(InvalidQcResult):
        apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "pass", score=score)

    cycle_in_qc.refresh_from_db()
    assert cycle_in_qc.status == "qc_pending"


@pytest.mark.django_db
def test_only_admin_may_override(cycle_in_qc, qc_profile, actor):
    with pytest.raises(UnauthorizedRole):
        apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "pass", is_override=True)


@pytest.mark.django_db
def test_qc_role_cannot_move_a_failed_cycle(cycle_in_qc, qc_profile, actor):
    apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "fail")

    with pytest.raises(UnauthorizedRole):
        apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "pass")


@pytest.mark.django_db
def test_override_of_failed_inspection_needs_reason(cycle_in_qc, qc_profile, admin_profile, actor):
    apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "fail")

    with pytest.raises(InvalidQcResult):
        apply_qc_result(actor(admin_profile), cycle_in_qc.pk, "pass", is_override=True)

    cycle_in_qc.refresh_from_db()
    assert cycle_in_qc.status == "qc_failed"


@pytest.mark.django_db
def test_admin_decision_is_always_an_override(cycle_in_qc, admin_profile, actor):
    outcome = apply_qc_result(actor(admin_profile), cycle_in_qc.pk, "fail", defects=["bent rim"])

    assert outcome.qc_log.is_override is True
    assert AuditLog.objects.filter(
        action="QC_OVERRIDE", record_id=str(cycle_in_qc.pk)
    ).count() == 1


@pytest.mark.django_db
def test_admin_can_confirm_a_failure(cycle_in_qc, qc_profile, admin_profile, actor):
    apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "fail")
    outcome = apply_qc_result(
        actor(admin_profile), cycle_in_qc.pk, "failed", is_override=True, reason="confirmed on re-test"
    )
    assert outcome.previous_status == "qc_failed"
    assert outcome.new_status == "qc_failed"


@pytest.mark.django_db
def test_full_cycle_scenario(
    cycle_factory,
    supervisor_profile,
    technician_profile,
    qc_profile,
    admin_profile,
    sales_profile,
    actor,
):
    from assembly_core.workflows.assignments import complete_assembly, create_assignment, start_assembly

    cycle = cycle_factory(serial_number="SN-SCENARIO-1")
    assert cycle.status == "pending"

    assignment = create_assignment(actor(supervisor_profile), cycle.pk, technician_profile.pk)
    assert start_assembly(actor(technician_profile), assignment.pk).cycle_status == "in_progress"
    assert complete_assembly(actor(technician_profile), assignment.pk).cycle_status == "qc_pending"

    failed = apply_qc_result(
        actor(qc_profile), cycle.pk, "fail", defects=["loose brake cable", "misaligned wheel"]
    )
    assert failed.new_status == "qc_failed"
    assert failed.qc_log.result == "failed"
    assert len(failed.qc_log.defects_found) == 2

    override = apply_qc_result(
        actor(admin_profile), cycle.pk, "pass", is_override=True, reason="re-tested"
    )
    assert override.new_status == "ready_for_dispatch"
    assert override.qc_log.is_override is True

    audit = AuditLog.objects.get(action="QC_OVERRIDE", record_id=str(cycle.pk))
    assert audit.user == admin_profile
    assert audit.reason == "re-tested"
    assert audit.old_values == {"status": "qc_failed"}
    assert audit.new_values["status"] == "ready_for_dispatch"
    assert audit.new_values["qc_log_id"] == override.qc_log.pk

    dispatched = dispatch_cycle(actor(sales_profile), cycle.pk, notes="Shipped to Store 12")
    assert dispatched.status == "dispatched"
    assert AuditLog.objects.filter(action="DISPATCH", record_id=str(cycle.pk)).exists()

    with pytest.raises(TerminalStateViolation):
        apply_qc_result(actor(admin_profile), cycle.pk, "fail", reason="late defect")

    timeline = list(CycleEvent.objects.filter(cycle=cycle).values_list("to_status", flat=True))
    assert timeline == [
        "pending",
        "assigned",
        "in_progress",
        "qc_pending",
        "qc_failed",
        "qc_passed",
        "ready_for_dispatch",
        "dispatched",
    ]
