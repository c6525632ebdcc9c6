# assembly_core/views_workflow_api.py

from __future__ import annotations

from django.shortcuts import get_object_or_404

from drf_spectacular.utils import extend_schema
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny

from assembly_core.context import actor_from_request
from assembly_core.models import Cycle
from assembly_core.permissions import HasActiveProfile
from assembly_core.views import RoleScopedQuerysetMixin
from assembly_core.serializers import (
    CycleEventSerializer,
    TransitionRequestSerializer,
    ValidateTransitionSerializer,
)
from assembly_core.workflows import (
    allowed_transitions,
    validate_transition,
    workflow_definition,
)
from assembly_core.workflows.executor import DEDICATED_OPERATIONS, execute_transition


# =============================================================
# API: Workflow definition (static)
# =============================================================

class WorkflowDefinitionView(APIView):
    """
    GET /api/workflows/definition/
    """
    permission_classes = [AllowAny]

    @extend_schema(tags=["Workflow"])
    def get(self, request):
        return Response(workflow_definition())


# =============================================================
# API: Dry-run validation
# =============================================================

class WorkflowValidateView(APIView):
    """
    POST /api/workflows/validate/

    Body:
        {"current_status": "qc_pending", "requested_status": "qc_passed"}

    Role defaults to the caller's own role. Nothing is written.
    """
    permission_classes = [HasActiveProfile]

    @extend_schema(tags=["Workflow"], request=ValidateTransitionSerializer)
    def post(self, request):
        payload = ValidateTransitionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        ctx = actor_from_request(request)
        decision = validate_transition(
            data.get("cycle_id"),
            data.get("current_status"),
            data["requested_status"],
            data.get("role") or ctx.role,
        )
        return Response(
            {
                "cycle_id": decision.cycle_id,
                "current": decision.current,
                "requested": decision.requested,
                "role": decision.role,
                "accepted": decision.accepted,
                "reason": decision.reason,
                "rule": decision.rule,
                "error": decision.error.code if decision.error else None,
            }
        )


# =============================================================
# API: Allowed transitions (role-aware)
# =============================================================

class CycleAllowedView(RoleScopedQuerysetMixin, APIView):
    """
    GET /api/cycles/<pk>/allowed/

    Returns the current state, the next states the caller's role may
    request, and which operation performs each of them.
    """
    permission_classes = [HasActiveProfile]
    technician_lookup = "assignments__technician"

    @extend_schema(tags=["Workflow"])
    def get(self, request, pk: int):
        ctx = actor_from_request(request)
        cycle = get_object_or_404(self.get_scoped_queryset(Cycle.objects.all()), pk=pk)

        allowed = allowed_transitions(cycle.status, ctx.role)
        return Response(
            {
                "cycle_id": cycle.pk,
                "current": cycle.status,
                "role": ctx.role,
                "allowed": allowed,
                "operations": {
                    target: DEDICATED_OPERATIONS.get((cycle.status, target), "transition")
                    for target in allowed
                },
            }
        )


# =============================================================
# API: Timeline
# =============================================================

class CycleTimelineView(RoleScopedQuerysetMixin, APIView):
    """
    GET /api/cycles/<pk>/timeline/
    """
    permission_classes = [HasActiveProfile]
    technician_lookup = "assignments__technician"

    @extend_schema(tags=["Workflow"])
    def get(self, request, pk: int):
        cycle = get_object_or_404(self.get_scoped_queryset(Cycle.objects.all()), pk=pk)
        events = cycle.events.select_related("performed_by").order_by("created_at", "id")
        return Response(
            {
                "cycle_id": cycle.pk,
                "serial_number": cycle.serial_number,
                "current": cycle.status,
                "events": CycleEventSerializer(events, many=True).data,
            }
        )


# =============================================================
# API: Execute transition (AUTHORITATIVE)
# =============================================================

class CycleTransitionView(APIView):
    """
    POST /api/cycles/<pk>/transition/

    Body:
        { "to_status": "dispatched", "comment": "..." }
        or
        { "status": "dispatched" }

    Edges that need more input (assignment, work events, QC) are rejected
    with a pointer to the endpoint that owns them.
    """
    permission_classes = [HasActiveProfile]

    @extend_schema(tags=["Workflow"], request=TransitionRequestSerializer)
    def post(self, request, pk: int):
        payload = TransitionRequestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        cycle = execute_transition(
            actor_from_request(request),
            pk,
            payload.validated_data["to_status"],
            comment=payload.validated_data.get("comment", ""),
        )

        return Response(
            {
                "cycle_id": cycle.pk,
                "current": cycle.status,
            }
        )
