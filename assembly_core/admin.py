# assembly_core/admin.py

from django.contrib import admin

from .models import (
    Assignment,
    AuditLog,
    Checklist,
    ChecklistItem,
    ChecklistTemplate,
    ChecklistTemplateItem,
    Cycle,
    CycleEvent,
    Profile,
    QcLog,
    Role,
)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Append-only records: viewable, never edited from admin."""

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =============================================================
# Identity
# =============================================================

@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "description")


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user_code", "full_name", "role", "status", "created_at")
    list_filter = ("role", "status")
    search_fields = ("user_code", "full_name", "user__username")
    readonly_fields = ("user_code", "created_at", "updated_at")


# =============================================================
# Cycles (status is workflow-controlled)
# =============================================================

class AssignmentInline(admin.TabularInline):
    model = Assignment
    fk_name = "cycle"
    extra = 0
    can_delete = False
    readonly_fields = (
        "technician",
        "assigned_by",
        "status",
        "assigned_at",
        "started_at",
        "completed_at",
        "due_date",
        "reassignment_reason",
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Cycle)
class CycleAdmin(admin.ModelAdmin):
    list_display = ("serial_number", "model", "variant", "status", "priority", "created_at")
    list_filter = ("status", "priority", "model")
    search_fields = ("serial_number", "model", "variant")
    readonly_fields = ("status", "created_by", "created_at", "updated_at")
    inlines = [AssignmentInline]
    ordering = ("-created_at",)


@admin.register(Assignment)
class AssignmentAdmin(ReadOnlyAdmin):
    list_display = ("cycle", "technician", "status", "due_date", "assigned_at")
    list_filter = ("status",)
    search_fields = ("cycle__serial_number", "technician__user_code")


# =============================================================
# Checklists
# =============================================================

class ChecklistTemplateItemInline(admin.TabularInline):
    model = ChecklistTemplateItem
    extra = 0
    ordering = ("item_order",)


@admin.register(ChecklistTemplate)
class ChecklistTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "type", "model", "is_active", "created_at")
    list_filter = ("type", "is_active")
    search_fields = ("name", "model")
    inlines = [ChecklistTemplateItemInline]


class ChecklistItemInline(admin.TabularInline):
    model = ChecklistItem
    extra = 0
    can_delete = False
    readonly_fields = ("item_name", "item_order", "is_required", "is_completed", "completed_by", "completed_at")


@admin.register(Checklist)
class ChecklistAdmin(admin.ModelAdmin):
    list_display = ("cycle", "template", "type", "created_at")
    list_filter = ("type",)
    search_fields = ("cycle__serial_number", "template__name")
    inlines = [ChecklistItemInline]


# =============================================================
# Immutable records (READ-ONLY)
# =============================================================

@admin.register(CycleEvent)
class CycleEventAdmin(ReadOnlyAdmin):
    list_display = ("cycle", "from_status", "to_status", "performed_by", "role", "created_at")
    list_filter = ("to_status", "role")
    search_fields = ("cycle__serial_number", "performed_by__user_code")
    ordering = ("-created_at",)


@admin.register(QcLog)
class QcLogAdmin(ReadOnlyAdmin):
    list_display = ("cycle", "inspector", "result", "overall_score", "is_override", "inspected_at")
    list_filter = ("result", "is_override")
    search_fields = ("cycle__serial_number", "inspector__user_code")
    ordering = ("-inspected_at",)


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ("created_at", "user", "action", "table_name", "record_id")
    list_filter = ("action", "table_name")
    search_fields = ("record_id", "user__user_code", "reason")
    ordering = ("-created_at",)
