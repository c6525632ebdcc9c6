# assembly_core/tests/test_guardrails.py

from unittest import mock

import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.db import DatabaseError, OperationalError
from django.test import TestCase, override_settings

from assembly_core.context import ActorContext
from assembly_core.models import AuditLog, Cycle, CycleEvent, Profile, QcLog
from assembly_core.services.audit import record_audit
from assembly_core.services.profiles import ensure_roles
from assembly_core.workflows.errors import InactiveProfile, TransientError
from assembly_core.workflows.executor import create_cycle, dispatch_cycle


class GuardrailTests(TestCase):
    """
    Status is only writable through the workflow; audit and timeline
    rows are append-only.
    """

    def setUp(self):
        roles = ensure_roles()
        User = get_user_model()

        self.admin = Profile.objects.create(
            user=User.objects.create_user(username="ADM901", password="pass12345"),
            full_name="Admin",
            user_code="ADM901",
            role=roles["admin"],
        )
        self.ctx = ActorContext.for_profile(self.admin)
        self.cycle = create_cycle(self.ctx, serial_number="SN-GUARD-1", model="Roadster")

    def test_direct_status_save_is_blocked(self):
        self.cycle.status = "dispatched"
        with self.assertRaises(PermissionDenied):
            self.cycle.save()

        self.cycle.refresh_from_db()
        self.assertEqual(self.cycle.status, "pending")

    def test_other_fields_save_normally(self):
        self.cycle.notes = "Priority customer"
        self.cycle.save()
        self.cycle.refresh_from_db()
        self.assertEqual(self.cycle.notes, "Priority customer")

    def test_bypass_flag_allows_data_fixes(self):
        self.cycle.status = "assigned"
        self.cycle.save(_workflow_bypass=True)
        self.cycle.refresh_from_db()
        self.assertEqual(self.cycle.status, "assigned")

    def test_audit_rows_cannot_be_updated_or_deleted(self):
        entry = AuditLog.objects.get(action="INSERT", table_name="cycles")

        entry.reason = "edited"
        with self.assertRaises(PermissionDenied):
            entry.save()
        with self.assertRaises(PermissionDenied):
            entry.delete()

        self.assertEqual(AuditLog.objects.get(pk=entry.pk).reason, "")

    def test_timeline_rows_cannot_be_updated(self):
        event = CycleEvent.objects.get(cycle=self.cycle)
        event.comment = "rewritten"
        with self.assertRaises(PermissionDenied):
            event.save()

    def test_inactive_actor_is_rejected(self):
        self.admin.status = "inactive"
        self.admin.save()
        with self.assertRaises(InactiveProfile):
            ActorContext.for_profile(self.admin)


@pytest.mark.django_db
def test_qc_logs_are_append_only(cycle_in_qc, qc_profile, actor):
    from assembly_core.workflows.qc import apply_qc_result

    log = apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "fail").qc_log
    with pytest.raises(PermissionDenied):
        log.delete()
    assert QcLog.objects.filter(pk=log.pk).exists()


@pytest.mark.django_db
def test_failed_audit_write_does_not_block_the_operation(cycle_factory, admin_profile, actor):
    cycle = cycle_factory()
    Cycle.objects.filter(pk=cycle.pk).update(status="ready_for_dispatch")

    with mock.patch(
        "assembly_core.services.audit.AuditLog.objects.create",
        side_effect=DatabaseError("audit table unavailable"),
    ), mock.patch("assembly_core.services.audit.logger") as audit_logger:
        dispatched = dispatch_cycle(actor(admin_profile), cycle.pk)

    assert dispatched.status == "dispatched"
    assert Cycle.objects.get(pk=cycle.pk).status == "dispatched"
    assert not AuditLog.objects.filter(action="DISPATCH").exists()
    audit_logger.exception.assert_called_once()
    assert "Audit write failed" in audit_logger.exception.call_args[0][0]


@pytest.mark.django_db
def test_strict_audit_rolls_back_the_operation(cycle_factory, admin_profile, actor, settings):
    settings.CYCLE_AUDIT_STRICT = True
    cycle = cycle_factory()
    Cycle.objects.filter(pk=cycle.pk).update(status="ready_for_dispatch")

    with mock.patch(
        "assembly_core.services.audit.AuditLog.objects.create",
        side_effect=DatabaseError("audit table unavailable"),
    ):
        with pytest.raises(DatabaseError):
            dispatch_cycle(actor(admin_profile), cycle.pk)

    assert Cycle.objects.get(pk=cycle.pk).status == "ready_for_dispatch"
    assert not CycleEvent.objects.filter(cycle=cycle, to_status="dispatched").exists()


@pytest.mark.django_db
def test_record_audit_accepts_profile_or_none(admin_profile):
    by_profile = record_audit(actor=admin_profile, action="UPDATE", table_name="cycles", record_id=1)
    by_system = record_audit(actor=None, action="UPDATE", table_name="cycles", record_id=2)
    assert by_profile.user == admin_profile
    assert by_system.user is None


@pytest.mark.django_db
def test_connectivity_errors_surface_as_transient(cycle_factory, admin_profile, actor):
    cycle = cycle_factory()
    with mock.patch(
        "assembly_core.workflows.executor.lock_cycle",
        side_effect=OperationalError("server closed the connection"),
    ):
        with pytest.raises(TransientError):
            dispatch_cycle(actor(admin_profile), cycle.pk)


@override_settings(CYCLE_AUDIT_STRICT=False)
class AuditWriterTests(TestCase):
    def test_reason_defaults_to_blank(self):
        entry = record_audit(actor=None, action="INSERT", table_name="profiles", record_id=None)
        self.assertEqual(entry.reason, "")
        self.assertEqual(entry.record_id, "")
