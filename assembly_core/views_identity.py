# assembly_core/views_identity.py
from __future__ import annotations

from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .context import actor_from_request
from .navigation import NAVIGATION, can_open_dashboard, home_path, navigation_for


class WhoAmIView(APIView):
    """
    Returns the authenticated profile, its role and the dashboard
    entries that role may open.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ctx = actor_from_request(request)
        profile = ctx.profile

        return Response(
            {
                "id": profile.pk,
                "user_code": profile.user_code,
                "full_name": profile.full_name,
                "role": ctx.role,
                "status": profile.status,
                "home": home_path(ctx.role),
                "navigation": navigation_for(ctx.role),
                "dashboards": [
                    name for name in NAVIGATION if can_open_dashboard(ctx.role, name)
                ],
            }
        )
