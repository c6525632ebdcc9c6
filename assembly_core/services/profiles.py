# assembly_core/services/profiles.py
"""
Profile management: creation with role-prefixed user codes, activation,
role changes. The Django username is the user code.
"""

from __future__ import annotations

import logging
import re
from typing import Dict

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from rest_framework.exceptions import ValidationError

from assembly_core.models import Assignment, Profile, Role
from assembly_core.services.audit import record_audit
from assembly_core.services.db import translate_db_errors
from assembly_core.workflows import normalize_role
from assembly_core.workflows.errors import ConflictingActiveAssignment, UnauthorizedRole
from assembly_core.workflows.states import ACTIVE_ASSIGNMENT_STATUSES, ProfileStatus, RoleName

logger = logging.getLogger(__name__)

USER_CODE_ATTEMPTS = 2

ROLE_CODE_PREFIXES: Dict[str, str] = {
    RoleName.ADMIN.value: "ADM",
    RoleName.SUPERVISOR.value: "SUP",
    RoleName.TECHNICIAN.value: "TEC",
    RoleName.QC.value: "QC",
    RoleName.SALES.value: "SAL",
}

ROLE_DESCRIPTIONS: Dict[str, str] = {
    RoleName.ADMIN.value: "Manages users, cycles, checklists and QC overrides",
    RoleName.SUPERVISOR.value: "Assigns cycles to technicians and monitors progress",
    RoleName.TECHNICIAN.value: "Assembles cycles and completes assembly checklists",
    RoleName.QC.value: "Inspects assembled cycles and records QC results",
    RoleName.SALES.value: "Dispatches cycles that passed QC",
}

for _table in (ROLE_CODE_PREFIXES, ROLE_DESCRIPTIONS):
    _missing = set(RoleName.values) - set(_table)
    if _missing:
        raise RuntimeError(f"Roles missing from profile tables: {sorted(_missing)}")


def _require_admin(ctx, action: str) -> None:
    if ctx.role != RoleName.ADMIN:
        raise UnauthorizedRole(
            f"Only admins can {action}.",
            rule=f"role:{action.replace(' ', '_')}",
        )


def _ensure_no_active_work(profile: Profile, change: str) -> None:
    active = (
        Assignment.objects.select_related("cycle")
        .filter(technician=profile, status__in=ACTIVE_ASSIGNMENT_STATUSES)
        .first()
    )
    if active is not None:
        raise ConflictingActiveAssignment(
            f"Cannot {change} {profile.user_code}: assignment #{active.pk} on cycle "
            f"{active.cycle.serial_number} is {active.status}. Reassign the cycle first.",
            rule="profile:active_assignment",
        )


def ensure_roles() -> Dict[str, Role]:
    roles = {}
    for name in RoleName.values:
        role, _ = Role.objects.get_or_create(
            name=name,
            defaults={"description": ROLE_DESCRIPTIONS[name]},
        )
        roles[name] = role
    return roles


def _resolve_role(role_name: str) -> Role:
    name = normalize_role(role_name)
    if name not in RoleName.values:
        raise ValidationError({"role": f"Unknown role: {role_name}"})
    return ensure_roles()[name]


def generate_user_code(role_name: str) -> str:
    """
    Next free code for the role: prefix + zero-padded sequence, e.g. TEC007.
    """
    name = normalize_role(role_name)
    prefix = ROLE_CODE_PREFIXES[name]
    pattern = re.compile(rf"^{prefix}(\d+)$")

    highest = 0
    for code in Profile.objects.filter(user_code__startswith=prefix).values_list("user_code", flat=True):
        match = pattern.match(code)
        if match:
            highest = max(highest, int(match.group(1)))

    return f"{prefix}{highest + 1:03d}"


@translate_db_errors
def create_profile(ctx, *, full_name: str, role_name: str, password: str) -> Profile:
    _require_admin(ctx, "create users")
    role = _resolve_role(role_name)

    User = get_user_model()
    with transaction.atomic():
        for attempt in range(1, USER_CODE_ATTEMPTS + 1):
            user_code = generate_user_code(role.name)
            try:
                with transaction.atomic():
                    user = User.objects.create_user(username=user_code, password=password)
                    profile = Profile.objects.create(
                        user=user,
                        full_name=full_name,
                        user_code=user_code,
                        role=role,
                        status=ProfileStatus.ACTIVE,
                    )
                break
            except IntegrityError:
                # Same code taken by a concurrent request.
                if attempt == USER_CODE_ATTEMPTS:
                    raise ValidationError(
                        {"user_code": f"Could not allocate a {role.name} user code. Please retry."}
                    )
                logger.warning("User code %s already taken, retrying", user_code)
        record_audit(
            actor=ctx,
            action="INSERT",
            table_name="profiles",
            record_id=profile.pk,
            new_values={"user_code": user_code, "role": role.name, "status": profile.status},
        )

    logger.info("Profile %s (%s) created by %s", user_code, role.name, ctx.user_code)
    return profile


@translate_db_errors
def set_profile_status(ctx, profile_id, status: str) -> Profile:
    _require_admin(ctx, "change user status")
    if status not in ProfileStatus.values:
        raise ValidationError({"status": f"Unknown profile status: {status}"})

    with transaction.atomic():
        profile = get_object_or_404(
            Profile.objects.select_for_update().select_related("user"),
            pk=profile_id,
        )
        if profile.pk == ctx.profile_id and status == ProfileStatus.INACTIVE:
            raise ValidationError({"status": "Admins cannot deactivate their own profile."})
        if status == ProfileStatus.INACTIVE:
            _ensure_no_active_work(profile, "deactivate")

        previous = profile.status
        profile.status = status
        profile.save(update_fields=["status", "updated_at"])

        # Inactive profiles may not authenticate.
        profile.user.is_active = status == ProfileStatus.ACTIVE
        profile.user.save(update_fields=["is_active"])

        record_audit(
            actor=ctx,
            action="UPDATE",
            table_name="profiles",
            record_id=profile.pk,
            old_values={"status": previous},
            new_values={"status": status},
        )

    return profile


@translate_db_errors
def set_profile_role(ctx, profile_id, role_name: str) -> Profile:
    _require_admin(ctx, "change user roles")
    role = _resolve_role(role_name)

    with transaction.atomic():
        profile = get_object_or_404(
            Profile.objects.select_for_update().select_related("role"),
            pk=profile_id,
        )
        previous = profile.role.name
        if previous != role.name:
            _ensure_no_active_work(profile, "change the role of")
        profile.role = role
        profile.save(update_fields=["role", "updated_at"])

        record_audit(
            actor=ctx,
            action="UPDATE",
            table_name="profiles",
            record_id=profile.pk,
            old_values={"role": previous},
            new_values={"role": role.name},
        )

    return profile
