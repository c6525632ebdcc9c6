# assembly_core/tests/conftest.py

from __future__ import annotations

import uuid
from typing import Callable, Optional

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from assembly_core.context import ActorContext
from assembly_core.models import Cycle, Profile
from assembly_core.services.profiles import ROLE_CODE_PREFIXES, ensure_roles
from assembly_core.workflows.assignments import create_assignment, start_assembly, complete_assembly
from assembly_core.workflows.executor import create_cycle
from assembly_core.workflows.states import ProfileStatus, RoleName

PASSWORD = "pass12345"


def _rand(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}".upper()


@pytest.fixture
def roles(db):
    return ensure_roles()


@pytest.fixture
def profile_factory(db, roles) -> Callable[..., Profile]:
    """
    Profile + Django user whose username is the user code.
    """
    counters = {}

    def _factory(
        role: str,
        *,
        full_name: Optional[str] = None,
        status: str = ProfileStatus.ACTIVE,
        user_code: Optional[str] = None,
    ) -> Profile:
        role = str(role)
        counters[role] = counters.get(role, 0) + 1
        code = user_code or f"{ROLE_CODE_PREFIXES[role]}{counters[role] + 900:03d}"

        User = get_user_model()
        user = User.objects.create_user(
            username=code,
            password=PASSWORD,
            is_active=status == ProfileStatus.ACTIVE,
        )
        return Profile.objects.create(
            user=user,
            full_name=full_name or f"{role.title()} {counters[role]}",
            user_code=code,
            role=roles[role],
            status=status,
        )

    return _factory


@pytest.fixture
def admin_profile(profile_factory):
    return profile_factory(RoleName.ADMIN)


@pytest.fixture
def supervisor_profile(profile_factory):
    return profile_factory(RoleName.SUPERVISOR)


@pytest.fixture
def technician_profile(profile_factory):
    return profile_factory(RoleName.TECHNICIAN)


@pytest.fixture
def other_technician(profile_factory):
    return profile_factory(RoleName.TECHNICIAN)


@pytest.fixture
def qc_profile(profile_factory):
    return profile_factory(RoleName.QC)


@pytest.fixture
def sales_profile(profile_factory):
    return profile_factory(RoleName.SALES)


@pytest.fixture
def actor() -> Callable[[Profile], ActorContext]:
    return ActorContext.for_profile


@pytest.fixture
def cycle_factory(admin_profile, actor) -> Callable[..., Cycle]:
    def _factory(**extra) -> Cycle:
        kwargs = {"serial_number": _rand("SN"), "model": "Roadster"}
        kwargs.update(extra)
        return create_cycle(actor(admin_profile), **kwargs)

    return _factory


@pytest.fixture
def cycle_in_qc(cycle_factory, supervisor_profile, technician_profile, actor):
    """
    A cycle walked through assignment and assembly, now waiting for QC.
    """
    cycle = cycle_factory()
    assignment = create_assignment(actor(supervisor_profile), cycle.pk, technician_profile.pk)
    start_assembly(actor(technician_profile), assignment.pk)
    complete_assembly(actor(technician_profile), assignment.pk)
    cycle.refresh_from_db()
    return cycle


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def client_for() -> Callable[[Profile], APIClient]:
    def _client(profile: Profile) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=profile.user)
        return client

    return _client
