# assembly_core/context.py
"""
Request-scoped actor context.

Every workflow operation receives an explicit ActorContext instead of
reading the current user from global or thread-local state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from rest_framework.exceptions import NotAuthenticated, PermissionDenied

from .models import Profile
from .workflows import normalize_role
from .workflows.errors import InactiveProfile


@dataclass(frozen=True)
class ActorContext:
    profile: Profile
    role: str
    user: Optional[Any] = None

    @property
    def profile_id(self) -> int:
        return self.profile.pk

    @property
    def user_code(self) -> str:
        return self.profile.user_code

    @classmethod
    def for_profile(cls, profile: Profile) -> "ActorContext":
        if not profile.is_active:
            raise InactiveProfile(
                f"Profile {profile.user_code} is inactive.",
                rule="actor:inactive",
            )
        return cls(
            profile=profile,
            role=normalize_role(profile.role.name),
            user=getattr(profile, "user", None),
        )


def actor_from_request(request) -> ActorContext:
    user = getattr(request, "user", None)
    if not user or not getattr(user, "is_authenticated", False):
        raise NotAuthenticated("Authentication credentials were not provided.")

    profile = (
        Profile.objects.select_related("role", "user")
        .filter(user=user)
        .first()
    )
    if profile is None:
        raise PermissionDenied("No cycle assembly profile is linked to this account.")

    return ActorContext.for_profile(profile)
