# assembly_core/permissions.py
from __future__ import annotations

from rest_framework.permissions import SAFE_METHODS, BasePermission

from .models import Profile
from .workflows import normalize_role
from .workflows.states import ProfileStatus, RoleName


# ------------------------------------------------------------------
# Role sets
# ------------------------------------------------------------------
ADMIN_ROLES = {RoleName.ADMIN.value}
ASSIGNING_ROLES = {RoleName.SUPERVISOR.value, RoleName.ADMIN.value}


def profile_role(user):
    """
    Normalized role of the user's active profile, or None.
    """
    if not user or not user.is_authenticated:
        return None
    profile = (
        Profile.objects.select_related("role")
        .filter(user=user, status=ProfileStatus.ACTIVE)
        .first()
    )
    if profile is None:
        return None
    return normalize_role(profile.role.name)


class HasActiveProfile(BasePermission):
    message = "An active cycle assembly profile is required."

    def has_permission(self, request, view):
        return profile_role(getattr(request, "user", None)) is not None


class RoleRequired(BasePermission):
    """
    Read: any user with an active profile
    Write: view.write_roles (default: admin only)

    Views may narrow reads too with view.read_roles.
    """

    message = "Your role does not permit this action."

    def has_permission(self, request, view):
        role = profile_role(getattr(request, "user", None))
        if role is None:
            return False

        if request.method in SAFE_METHODS:
            read_roles = getattr(view, "read_roles", None)
            return read_roles is None or role in read_roles

        return role in getattr(view, "write_roles", ADMIN_ROLES)


class IsAdminRole(BasePermission):
    message = "Only admins can access this resource."

    def has_permission(self, request, view):
        return profile_role(getattr(request, "user", None)) in ADMIN_ROLES
