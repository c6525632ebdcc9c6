# assembly_core/views.py
from __future__ import annotations

from django.db import connection
from django.db.models import QuerySet

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .context import actor_from_request
from .filters import AssignmentFilter, AuditLogFilter, CycleFilter, ProfileFilter, QcLogFilter
from .models import (
    Assignment,
    AuditLog,
    Checklist,
    ChecklistItem,
    ChecklistTemplate,
    Cycle,
    Profile,
    QcLog,
)
from .permissions import ADMIN_ROLES, ASSIGNING_ROLES, HasActiveProfile, IsAdminRole, RoleRequired
from .serializers import (
    AssignmentCreateSerializer,
    AssignmentSerializer,
    AuditLogSerializer,
    ChecklistInstantiateSerializer,
    ChecklistItemSerializer,
    ChecklistSerializer,
    ChecklistTemplateCreateSerializer,
    ChecklistTemplateItemSerializer,
    ChecklistTemplateSerializer,
    CycleCreateSerializer,
    CycleSerializer,
    DispatchSerializer,
    DueDateSerializer,
    ItemCompletionSerializer,
    ProfileCreateSerializer,
    ProfileRoleSerializer,
    ProfileSerializer,
    ProfileStatusSerializer,
    QcLogSerializer,
    QcResultInputSerializer,
    ReassignSerializer,
    TemplateItemCreateSerializer,
    TemplateItemUpdateSerializer,
)
from .services import profiles as profile_service
from .services.stats import dashboard_stats
from .workflows import assignments as assignment_ops
from .workflows import checklists as checklist_ops
from .workflows.executor import create_cycle, dispatch_cycle
from .workflows.qc import apply_qc_result
from .workflows.states import RoleName

TECHNICIAN = RoleName.TECHNICIAN.value


# ===============================================================
# Role-scoped queryset mixin
# ===============================================================
class RoleScopedQuerysetMixin:
    """
    Technicians only see rows tied to their own assignments.
    `technician_lookup` is the ORM path from the model to the technician.
    """

    technician_lookup: str = ""

    def get_scoped_queryset(self, base_qs: QuerySet) -> QuerySet:
        ctx = actor_from_request(self.request)
        if ctx.role != TECHNICIAN or not self.technician_lookup:
            return base_qs
        return base_qs.filter(**{self.technician_lookup: ctx.profile}).distinct()


# ===============================================================
# Health
# ===============================================================
class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        return Response({"status": "ok", "service": "cycle-assembly"})


# ===============================================================
# Dashboard
# ===============================================================
class DashboardStatsView(APIView):
    permission_classes = [IsAdminRole]

    @extend_schema(tags=["Dashboard"])
    def get(self, request):
        return Response(dashboard_stats())


# ===============================================================
# Profiles
# ===============================================================
class ProfileViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Profile.objects.select_related("role", "user").all()
    serializer_class = ProfileSerializer
    permission_classes = [RoleRequired]
    read_roles = ADMIN_ROLES | ASSIGNING_ROLES
    write_roles = ADMIN_ROLES
    filterset_class = ProfileFilter

    def create(self, request):
        payload = ProfileCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        profile = profile_service.create_profile(
            actor_from_request(request),
            full_name=payload.validated_data["full_name"],
            role_name=payload.validated_data["role"],
            password=payload.validated_data["password"],
        )
        return Response(ProfileSerializer(profile).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        payload = ProfileStatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        profile = profile_service.set_profile_status(
            actor_from_request(request), pk, payload.validated_data["status"]
        )
        return Response(ProfileSerializer(profile).data)

    @action(detail=True, methods=["post"], url_path="role")
    def set_role(self, request, pk=None):
        payload = ProfileRoleSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        profile = profile_service.set_profile_role(
            actor_from_request(request), pk, payload.validated_data["role"]
        )
        return Response(ProfileSerializer(profile).data)


# ===============================================================
# Cycles
# ===============================================================
class CycleViewSet(RoleScopedQuerysetMixin, viewsets.ModelViewSet):
    """
    Status is never writable here. Use the transition, qc and dispatch
    actions or the assignment endpoints.
    """

    queryset = Cycle.objects.select_related("created_by__role").all()
    serializer_class = CycleSerializer
    permission_classes = [RoleRequired]
    write_roles = ADMIN_ROLES
    filterset_class = CycleFilter
    technician_lookup = "assignments__technician"
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_queryset(self):
        return self.get_scoped_queryset(super().get_queryset())

    def get_permissions(self):
        # Workflow actions carry their own role rules in the engine.
        if self.action in {"qc", "dispatch_unit"}:
            return [HasActiveProfile()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        payload = CycleCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        cycle = create_cycle(actor_from_request(request), **payload.validated_data)
        return Response(CycleSerializer(cycle).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def qc(self, request, pk=None):
        payload = QcResultInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        outcome = apply_qc_result(
            actor_from_request(request),
            pk,
            data["result"],
            score=data.get("score"),
            defects=data.get("defects"),
            notes=data.get("notes"),
            is_override=data.get("is_override", False),
            reason=data.get("reason"),
            photos=data.get("photos"),
        )
        return Response(
            {
                "previous_status": outcome.previous_status,
                "new_status": outcome.new_status,
                "qc_log": QcLogSerializer(outcome.qc_log).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"], url_path="dispatch", url_name="dispatch")
    def dispatch_unit(self, request, pk=None):
        payload = DispatchSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        cycle = dispatch_cycle(
            actor_from_request(request), pk, notes=payload.validated_data.get("notes")
        )
        return Response(CycleSerializer(cycle).data)


# ===============================================================
# Assignments
# ===============================================================
class AssignmentViewSet(
    RoleScopedQuerysetMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Assignment.objects.select_related(
        "cycle", "technician__role", "assigned_by__role"
    ).all()
    serializer_class = AssignmentSerializer
    permission_classes = [RoleRequired]
    write_roles = ASSIGNING_ROLES
    filterset_class = AssignmentFilter
    technician_lookup = "technician"

    def get_queryset(self):
        return self.get_scoped_queryset(super().get_queryset())

    def get_permissions(self):
        # Ownership of start/complete is checked by the engine.
        if self.action in {"start", "complete"}:
            return [HasActiveProfile()]
        return super().get_permissions()

    def create(self, request):
        payload = AssignmentCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        assignment = assignment_ops.create_assignment(
            actor_from_request(request),
            payload.validated_data["cycle"],
            payload.validated_data["technician"],
            due_date=payload.validated_data.get("due_date"),
        )
        return Response(AssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)

    def _work_event(self, request, pk, event):
        outcome = assignment_ops.transition_on_work_event(actor_from_request(request), pk, event)
        return Response(
            {
                "assignment": AssignmentSerializer(outcome.assignment).data,
                "assignment_status": outcome.assignment_status,
                "cycle_status": outcome.cycle_status,
            }
        )

    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):
        return self._work_event(request, pk, "start")

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        return self._work_event(request, pk, "complete")

    @action(detail=True, methods=["post"])
    def reassign(self, request, pk=None):
        payload = ReassignSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        assignment = assignment_ops.reassign_cycle(
            actor_from_request(request),
            pk,
            payload.validated_data["technician"],
            reason=payload.validated_data.get("reason"),
            due_date=payload.validated_data.get("due_date"),
        )
        return Response(AssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="due-date")
    def due_date(self, request, pk=None):
        payload = DueDateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        assignment = assignment_ops.set_due_date(
            actor_from_request(request), pk, payload.validated_data["due_date"]
        )
        return Response(AssignmentSerializer(assignment).data)


# ===============================================================
# Checklists
# ===============================================================
class ChecklistTemplateViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = ChecklistTemplate.objects.prefetch_related("items").all()
    serializer_class = ChecklistTemplateSerializer
    permission_classes = [RoleRequired]
    write_roles = ADMIN_ROLES
    filterset_fields = ["type", "model", "is_active"]
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def create(self, request):
        payload = ChecklistTemplateCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        template = checklist_ops.create_checklist_template(
            actor_from_request(request),
            name=payload.validated_data["name"],
            checklist_type=payload.validated_data["type"],
            items=payload.validated_data.get("items", []),
            model=payload.validated_data.get("model", ""),
        )
        return Response(ChecklistTemplateSerializer(template).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def items(self, request, pk=None):
        payload = TemplateItemCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        item = checklist_ops.add_template_item(
            actor_from_request(request), pk, **payload.validated_data
        )
        return Response(ChecklistTemplateItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch", "delete"], url_path=r"items/(?P<item_id>\d+)", url_name="item")
    def item(self, request, pk=None, item_id=None):
        ctx = actor_from_request(request)
        if request.method == "DELETE":
            checklist_ops.remove_template_item(ctx, pk, item_id)
            return Response(status=status.HTTP_204_NO_CONTENT)

        payload = TemplateItemUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        item = checklist_ops.update_template_item(ctx, pk, item_id, **payload.validated_data)
        return Response(ChecklistTemplateItemSerializer(item).data)


class ChecklistViewSet(
    RoleScopedQuerysetMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Checklist.objects.select_related("template").prefetch_related(
        "items__completed_by"
    )
    serializer_class = ChecklistSerializer
    permission_classes = [RoleRequired]
    write_roles = ASSIGNING_ROLES
    filterset_fields = ["cycle", "type"]
    technician_lookup = "cycle__assignments__technician"

    def get_queryset(self):
        return self.get_scoped_queryset(super().get_queryset())

    def create(self, request):
        payload = ChecklistInstantiateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        checklist = checklist_ops.instantiate_checklist(
            actor_from_request(request),
            payload.validated_data["cycle"],
            payload.validated_data["template"],
        )
        return Response(ChecklistSerializer(checklist).data, status=status.HTTP_201_CREATED)


class ChecklistItemViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = ChecklistItem.objects.select_related("completed_by").all()
    serializer_class = ChecklistItemSerializer
    permission_classes = [RoleRequired]

    def get_permissions(self):
        # Who may tick an item depends on the checklist type; the engine decides.
        if self.action == "complete":
            return [HasActiveProfile()]
        return super().get_permissions()

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        payload = ItemCompletionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        item = checklist_ops.set_checklist_item_completion(
            actor_from_request(request),
            pk,
            payload.validated_data["is_completed"],
            notes=payload.validated_data.get("notes"),
            photo_url=payload.validated_data.get("photo_url"),
        )
        return Response(ChecklistItemSerializer(item).data)


# ===============================================================
# QC logs / audit logs (READ-ONLY)
# ===============================================================
class QcLogViewSet(RoleScopedQuerysetMixin, viewsets.ReadOnlyModelViewSet):
    queryset = QcLog.objects.select_related("cycle", "inspector__role").all()
    serializer_class = QcLogSerializer
    permission_classes = [RoleRequired]
    filterset_class = QcLogFilter
    technician_lookup = "cycle__assignments__technician"

    def get_queryset(self):
        return self.get_scoped_queryset(super().get_queryset())


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditLog.objects.select_related("user").all()
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminRole]
    filterset_class = AuditLogFilter
