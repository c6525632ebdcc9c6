# assembly_core/urls.py

from django.urls import path, include
from rest_framework.routers import DefaultRouter

# -------------------------------------------------
# Core API ViewSets
# -------------------------------------------------
from .views import (
    AssignmentViewSet,
    AuditLogViewSet,
    ChecklistItemViewSet,
    ChecklistTemplateViewSet,
    ChecklistViewSet,
    CycleViewSet,
    DashboardStatsView,
    HealthCheckView,
    ProfileViewSet,
    QcLogViewSet,
)

# -------------------------------------------------
# Workflow APIs
# -------------------------------------------------
from .views_workflow_api import (
    CycleAllowedView,
    CycleTimelineView,
    CycleTransitionView,
    WorkflowDefinitionView,
    WorkflowValidateView,
)

# -------------------------------------------------
# Identity
# -------------------------------------------------
from .views_identity import WhoAmIView


app_name = "assembly_core"

# -------------------------------------------------
# Router (CRUD APIs)
# -------------------------------------------------
router = DefaultRouter()
router.register(r"profiles", ProfileViewSet, basename="profile")
router.register(r"cycles", CycleViewSet, basename="cycle")
router.register(r"assignments", AssignmentViewSet, basename="assignment")
router.register(r"checklist-templates", ChecklistTemplateViewSet, basename="checklist-template")
router.register(r"checklists", ChecklistViewSet, basename="checklist")
router.register(r"checklist-items", ChecklistItemViewSet, basename="checklist-item")
router.register(r"qc-logs", QcLogViewSet, basename="qclog")
router.register(r"audit-logs", AuditLogViewSet, basename="auditlog")


urlpatterns = [
    # ============================================================
    # System
    # ============================================================
    path("health/", HealthCheckView.as_view(), name="health_check"),
    path("dashboard/stats/", DashboardStatsView.as_view(), name="dashboard-stats"),

    # ============================================================
    # Identity
    # ============================================================
    path("whoami/", WhoAmIView.as_view(), name="whoami"),

    # ============================================================
    # Workflow (static + dry run)
    # ============================================================
    path("workflows/definition/", WorkflowDefinitionView.as_view(), name="workflow-definition"),
    path("workflows/validate/", WorkflowValidateView.as_view(), name="workflow-validate"),

    # ============================================================
    # Workflow runtime (single cycle)
    # ============================================================
    path("cycles/<int:pk>/allowed/", CycleAllowedView.as_view(), name="cycle-allowed"),
    path("cycles/<int:pk>/timeline/", CycleTimelineView.as_view(), name="cycle-timeline"),
    path("cycles/<int:pk>/transition/", CycleTransitionView.as_view(), name="cycle-transition"),

    # ============================================================
    # Core API
    # ============================================================
    path("", include(router.urls)),
]
