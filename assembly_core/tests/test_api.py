# assembly_core/tests/test_api.py

from unittest import mock

import pytest
from django.db import OperationalError

from assembly_core.models import Cycle

PASSWORD = "pass12345"

pytestmark = pytest.mark.django_db


def _ready_for_dispatch(cycle):
    Cycle.objects.filter(pk=cycle.pk).update(status="ready_for_dispatch")
    return cycle


# ---------------------------------------------------------------
# Login / identity
# ---------------------------------------------------------------

def test_login_by_user_code_is_case_insensitive(api_client, technician_profile):
    res = api_client.post(
        "/api/token/",
        {"username": technician_profile.user_code.lower(), "password": PASSWORD},
        format="json",
    )
    assert res.status_code == 200, res.data
    assert res.data["access"]
    assert res.data["refresh"]
    assert res.data["user_code"] == technician_profile.user_code
    assert res.data["role"] == "technician"
    assert res.data["navigation"][0]["path"] == "/technician/dashboard"


def test_inactive_profile_cannot_log_in(api_client, profile_factory):
    inactive = profile_factory("technician", status="inactive")
    res = api_client.post(
        "/api/token/",
        {"username": inactive.user_code, "password": PASSWORD},
        format="json",
    )
    assert res.status_code == 401


def test_wrong_password_is_rejected(api_client, sales_profile):
    res = api_client.post(
        "/api/token/",
        {"username": sales_profile.user_code, "password": "nope"},
        format="json",
    )
    assert res.status_code == 401


def test_token_grants_access(api_client, qc_profile):
    token = api_client.post(
        "/api/token/",
        {"username": qc_profile.user_code, "password": PASSWORD},
        format="json",
    ).data["access"]

    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    res = api_client.get("/api/whoami/")
    assert res.status_code == 200
    assert res.data["user_code"] == qc_profile.user_code


def test_whoami(client_for, qc_profile, admin_profile):
    res = client_for(qc_profile).get("/api/whoami/")
    assert res.status_code == 200
    assert res.data["role"] == "qc"
    assert res.data["home"] == "/qc/dashboard"
    assert res.data["dashboards"] == ["qc"]

    res = client_for(admin_profile).get("/api/whoami/")
    assert set(res.data["dashboards"]) == {"admin", "supervisor", "technician", "qc", "sales"}


def test_anonymous_requests_are_rejected(api_client):
    assert api_client.get("/api/cycles/").status_code == 401
    assert api_client.get("/api/whoami/").status_code == 401


# ---------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------

def test_health(api_client):
    res = api_client.get("/api/health/")
    assert res.status_code == 200
    assert res.data["status"] == "ok"


def test_workflow_definition_is_public(api_client):
    res = api_client.get("/api/workflows/definition/")
    assert res.status_code == 200
    assert res.data["initial"] == "pending"
    assert res.data["terminal"] == ["dispatched"]
    assert {"from": "ready_for_dispatch", "to": "dispatched"}.items() <= res.data["transitions"][-1].items()


# ---------------------------------------------------------------
# End to end
# ---------------------------------------------------------------

def test_full_cycle_through_the_api(
    client_for, admin_profile, supervisor_profile, technician_profile, qc_profile, sales_profile
):
    admin = client_for(admin_profile)
    res = admin.post("/api/cycles/", {"serial_number": "SN-API-1", "model": "Roadster"}, format="json")
    assert res.status_code == 201, res.data
    cycle_id = res.data["id"]
    assert res.data["status"] == "pending"

    res = client_for(supervisor_profile).post(
        "/api/assignments/",
        {"cycle": cycle_id, "technician": technician_profile.pk, "due_date": "2026-12-01"},
        format="json",
    )
    assert res.status_code == 201, res.data
    assignment_id = res.data["id"]
    assert res.data["cycle_status"] == "assigned"

    tech = client_for(technician_profile)
    res = tech.post(f"/api/assignments/{assignment_id}/start/")
    assert res.status_code == 200, res.data
    assert res.data["cycle_status"] == "in_progress"

    res = tech.post(f"/api/assignments/{assignment_id}/complete/")
    assert res.status_code == 200, res.data
    assert res.data["assignment_status"] == "completed"
    assert res.data["cycle_status"] == "qc_pending"

    res = client_for(qc_profile).post(
        f"/api/cycles/{cycle_id}/qc/",
        {"result": "Passed", "score": 92, "notes": "Clean build"},
        format="json",
    )
    assert res.status_code == 201, res.data
    assert res.data["previous_status"] == "qc_pending"
    assert res.data["new_status"] == "ready_for_dispatch"
    assert res.data["qc_log"]["result"] == "passed"
    assert res.data["qc_log"]["is_override"] is False

    sales = client_for(sales_profile)
    res = sales.get(f"/api/cycles/{cycle_id}/allowed/")
    assert res.data["allowed"] == ["dispatched"]
    assert res.data["operations"] == {"dispatched": "transition"}

    res = sales.post(f"/api/cycles/{cycle_id}/transition/", {"to_status": "dispatched"}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["current"] == "dispatched"

    res = sales.get(f"/api/cycles/{cycle_id}/timeline/")
    assert [e["to_status"] for e in res.data["events"]] == [
        "pending",
        "assigned",
        "in_progress",
        "qc_pending",
        "qc_passed",
        "ready_for_dispatch",
        "dispatched",
    ]
    assert res.data["events"][5]["role"] == "system"
    assert res.data["events"][5]["performed_by"] is None

    # Terminal: nothing moves a dispatched cycle.
    res = admin.post(f"/api/cycles/{cycle_id}/transition/", {"status": "dispatched"}, format="json")
    assert res.status_code == 409
    assert res.data["code"] == "terminal_state"


def test_dispatch_action(client_for, sales_profile, cycle_factory):
    cycle = _ready_for_dispatch(cycle_factory())
    res = client_for(sales_profile).post(
        f"/api/cycles/{cycle.pk}/dispatch/", {"notes": "Truck 4"}, format="json"
    )
    assert res.status_code == 200, res.data
    assert res.data["status"] == "dispatched"
    assert res.data["notes"] == "Truck 4"


# ---------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------

def test_second_assignment_is_a_conflict(client_for, supervisor_profile, technician_profile, other_technician, cycle_factory):
    cycle = cycle_factory()
    client = client_for(supervisor_profile)
    first = client.post("/api/assignments/", {"cycle": cycle.pk, "technician": technician_profile.pk}, format="json")
    assert first.status_code == 201

    res = client.post("/api/assignments/", {"cycle": cycle.pk, "technician": other_technician.pk}, format="json")
    assert res.status_code == 409
    assert res.data["code"] == "conflicting_active_assignment"
    assert res.data["rule"] == "assignment:active_exists"


def test_wrong_role_for_inspection_is_forbidden(client_for, sales_profile, cycle_in_qc):
    res = client_for(sales_profile).post(f"/api/cycles/{cycle_in_qc.pk}/qc/", {"result": "pass"}, format="json")
    assert res.status_code == 403
    assert res.data["code"] == "unauthorized_role"
    assert Cycle.objects.get(pk=cycle_in_qc.pk).status == "qc_pending"


def test_bad_qc_result_is_a_bad_request(client_for, qc_profile, cycle_in_qc):
    res = client_for(qc_profile).post(f"/api/cycles/{cycle_in_qc.pk}/qc/", {"result": "maybe"}, format="json")
    assert res.status_code == 400
    assert res.data["code"] == "invalid_qc_result"


def test_transition_endpoint_points_to_the_owning_operation(client_for, admin_profile, cycle_factory):
    cycle = cycle_factory()
    res = client_for(admin_profile).post(
        f"/api/cycles/{cycle.pk}/transition/", {"to_status": "assigned"}, format="json"
    )
    assert res.status_code == 400
    assert res.data["code"] == "invalid_transition"
    assert res.data["rule"] == "operation:create_assignment"
    assert Cycle.objects.get(pk=cycle.pk).status == "pending"


def test_transition_endpoint_requires_a_target(client_for, admin_profile, cycle_factory):
    cycle = cycle_factory()
    res = client_for(admin_profile).post(f"/api/cycles/{cycle.pk}/transition/", {}, format="json")
    assert res.status_code == 400
    assert "to_status" in res.data


def test_storage_outage_is_retryable(client_for, sales_profile, cycle_factory):
    cycle = _ready_for_dispatch(cycle_factory())
    with mock.patch(
        "assembly_core.workflows.executor.lock_cycle",
        side_effect=OperationalError("connection refused"),
    ):
        res = client_for(sales_profile).post(
            f"/api/cycles/{cycle.pk}/transition/", {"to_status": "dispatched"}, format="json"
        )
    assert res.status_code == 503
    assert res["Retry-After"] == "5"
    assert res.data["code"] == "transient_error"


def test_unknown_cycle_is_not_found(client_for, sales_profile):
    res = client_for(sales_profile).post("/api/cycles/999999/transition/", {"to_status": "dispatched"}, format="json")
    assert res.status_code == 404


# ---------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------

def test_validate_uses_callers_role(client_for, qc_profile, sales_profile):
    body = {"current_status": "qc_pending", "requested_status": "QC Passed"}

    res = client_for(qc_profile).post("/api/workflows/validate/", body, format="json")
    assert res.status_code == 200
    assert res.data["accepted"] is True
    assert res.data["requested"] == "qc_passed"

    res = client_for(sales_profile).post("/api/workflows/validate/", body, format="json")
    assert res.data["accepted"] is False
    assert res.data["error"] == "unauthorized_role"


def test_validate_reports_missing_edge(client_for, admin_profile):
    res = client_for(admin_profile).post(
        "/api/workflows/validate/",
        {"current_status": "pending", "requested_status": "dispatched", "role": "admin"},
        format="json",
    )
    assert res.data["accepted"] is False
    assert res.data["error"] == "invalid_transition"


# ---------------------------------------------------------------
# Cycle resource
# ---------------------------------------------------------------

def test_only_admin_creates_cycles(client_for, supervisor_profile):
    res = client_for(supervisor_profile).post(
        "/api/cycles/", {"serial_number": "SN-NOPE", "model": "Roadster"}, format="json"
    )
    assert res.status_code == 403
    assert not Cycle.objects.filter(serial_number="SN-NOPE").exists()


def test_duplicate_serial_is_rejected(client_for, admin_profile, cycle_factory):
    cycle = cycle_factory()
    res = client_for(admin_profile).post(
        "/api/cycles/", {"serial_number": cycle.serial_number, "model": "Roadster"}, format="json"
    )
    assert res.status_code == 400
    assert "serial_number" in res.data


def test_patch_cannot_touch_serial_or_status(client_for, admin_profile, cycle_factory):
    cycle = cycle_factory()
    client = client_for(admin_profile)

    res = client.patch(f"/api/cycles/{cycle.pk}/", {"serial_number": "SN-CHANGED"}, format="json")
    assert res.status_code == 400

    res = client.patch(f"/api/cycles/{cycle.pk}/", {"status": "dispatched", "priority": "high"}, format="json")
    assert res.status_code == 200
    assert res.data["status"] == "pending"
    assert res.data["priority"] == "high"


def test_technician_sees_only_own_cycles(
    client_for, supervisor_profile, technician_profile, other_technician, cycle_factory, actor
):
    from assembly_core.workflows.assignments import create_assignment

    mine = cycle_factory()
    theirs = cycle_factory()
    cycle_factory()
    create_assignment(actor(supervisor_profile), mine.pk, technician_profile.pk)
    create_assignment(actor(supervisor_profile), theirs.pk, other_technician.pk)

    res = client_for(technician_profile).get("/api/cycles/")
    assert res.status_code == 200
    assert [row["id"] for row in res.data["results"]] == [mine.pk]

    res = client_for(supervisor_profile).get("/api/cycles/")
    assert res.data["count"] == 3


def test_technician_cannot_read_other_technicians_cycle_history(
    client_for, qc_profile, technician_profile, other_technician, cycle_in_qc, actor
):
    from assembly_core.workflows.qc import apply_qc_result

    apply_qc_result(actor(qc_profile), cycle_in_qc.pk, "fail")

    outsider = client_for(other_technician)
    assert outsider.get(f"/api/cycles/{cycle_in_qc.pk}/timeline/").status_code == 404
    assert outsider.get(f"/api/cycles/{cycle_in_qc.pk}/allowed/").status_code == 404
    assert outsider.get("/api/qc-logs/").data["count"] == 0

    owner = client_for(technician_profile)
    assert owner.get(f"/api/cycles/{cycle_in_qc.pk}/timeline/").status_code == 200
    assert owner.get(f"/api/cycles/{cycle_in_qc.pk}/allowed/").status_code == 200
    assert owner.get("/api/qc-logs/").data["count"] == 1

    assert client_for(qc_profile).get(f"/api/cycles/{cycle_in_qc.pk}/timeline/").status_code == 200


def test_cycle_list_filters_by_status(client_for, sales_profile, cycle_factory):
    ready = _ready_for_dispatch(cycle_factory())
    cycle_factory()

    res = client_for(sales_profile).get("/api/cycles/", {"status": "ready_for_dispatch"})
    assert [row["id"] for row in res.data["results"]] == [ready.pk]


# ---------------------------------------------------------------
# Admin surfaces
# ---------------------------------------------------------------

def test_audit_log_is_admin_only(client_for, admin_profile, supervisor_profile, cycle_factory):
    cycle_factory()
    assert client_for(supervisor_profile).get("/api/audit-logs/").status_code == 403

    res = client_for(admin_profile).get("/api/audit-logs/", {"table_name": "cycles"})
    assert res.status_code == 200
    assert res.data["count"] == 1
    assert res.data["results"][0]["action"] == "INSERT"


def test_dashboard_stats_endpoint(client_for, admin_profile, qc_profile, cycle_factory):
    cycle_factory()
    assert client_for(qc_profile).get("/api/dashboard/stats/").status_code == 403

    res = client_for(admin_profile).get("/api/dashboard/stats/")
    assert res.status_code == 200
    assert res.data["total_cycles"] == 1
    assert res.data["cycles_by_status"]["pending"] == 1


def test_admin_creates_and_deactivates_users(client_for, admin_profile, supervisor_profile):
    admin = client_for(admin_profile)
    res = admin.post(
        "/api/profiles/",
        {"full_name": "Meera Nair", "role": "technician", "password": "welcome-123"},
        format="json",
    )
    assert res.status_code == 201, res.data
    assert res.data["user_code"] == "TEC001"
    profile_id = res.data["id"]

    res = admin.post(f"/api/profiles/{profile_id}/status/", {"status": "inactive"}, format="json")
    assert res.status_code == 200
    assert res.data["status"] == "inactive"

    res = client_for(supervisor_profile).post(
        "/api/profiles/",
        {"full_name": "Nope", "role": "technician", "password": "welcome-123"},
        format="json",
    )
    assert res.status_code == 403
