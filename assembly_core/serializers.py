from __future__ import annotations

from typing import Any, Dict, List, Optional

from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

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
)
from .navigation import navigation_for
from .workflows import allowed_next_states
from .workflows.states import ChecklistType, Priority, ProfileStatus, RoleName


# ===============================================================
# Helpers
# ===============================================================

class ImmutableFieldsMixin:
    """
    Blocks updates to selected fields if they appear in incoming validated data.
    """
    immutable_fields: tuple[str, ...] = ()

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        if self.instance is not None and self.immutable_fields:
            for field in self.immutable_fields:
                if field in attrs:
                    raise serializers.ValidationError(
                        {field: "This field is immutable."}
                    )
        return super().validate(attrs)


class ProfileSlimSerializer(serializers.ModelSerializer):
    role = serializers.CharField(source="role.name", read_only=True)

    class Meta:
        model = Profile
        fields = ("id", "user_code", "full_name", "role")
        read_only_fields = fields


# ===============================================================
# Auth
# ===============================================================

class UserCodeTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Login with user code + password. Inactive profiles get no token.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        profile = getattr(user, "profile", None)
        if profile is not None:
            token["user_code"] = profile.user_code
            token["role"] = profile.role.name
        return token

    def validate(self, attrs):
        attrs[self.username_field] = str(attrs.get(self.username_field, "")).strip().upper()
        data = super().validate(attrs)

        profile = Profile.objects.select_related("role").filter(user=self.user).first()
        if profile is None or not profile.is_active:
            raise AuthenticationFailed(
                self.error_messages["no_active_account"],
                "no_active_account",
            )

        data["user_code"] = profile.user_code
        data["role"] = profile.role.name
        data["navigation"] = navigation_for(profile.role.name)
        return data


# ===============================================================
# Profiles
# ===============================================================

class ProfileSerializer(serializers.ModelSerializer):
    role = serializers.CharField(source="role.name", read_only=True)
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = Profile
        fields = (
            "id",
            "user_code",
            "username",
            "full_name",
            "role",
            "status",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "user_code",
            "username",
            "role",
            "status",
            "created_at",
            "updated_at",
        )


class ProfileCreateSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=255)
    role = serializers.ChoiceField(choices=RoleName.choices)
    password = serializers.CharField(write_only=True, min_length=6, trim_whitespace=False)


class ProfileStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ProfileStatus.choices)


class ProfileRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=RoleName.choices)


# ===============================================================
# Cycles
# ===============================================================

class CycleSerializer(ImmutableFieldsMixin, serializers.ModelSerializer):
    created_by = ProfileSlimSerializer(read_only=True)
    allowed_next_states = serializers.SerializerMethodField()
    active_assignment = serializers.SerializerMethodField()

    immutable_fields = ("serial_number",)

    class Meta:
        model = Cycle
        fields = (
            "id",
            "serial_number",
            "model",
            "variant",
            "color",
            "status",
            "priority",
            "notes",
            "created_by",
            "active_assignment",
            "allowed_next_states",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "status",
            "created_by",
            "active_assignment",
            "allowed_next_states",
            "created_at",
            "updated_at",
        )

    def get_allowed_next_states(self, obj: Cycle) -> List[str]:
        return allowed_next_states(obj.status)

    def get_active_assignment(self, obj: Cycle) -> Optional[Dict[str, Any]]:
        assignment = obj.active_assignment
        if assignment is None:
            return None
        return {
            "id": assignment.pk,
            "technician": assignment.technician.user_code,
            "status": assignment.status,
            "due_date": assignment.due_date,
        }


class CycleCreateSerializer(serializers.Serializer):
    serial_number = serializers.CharField(max_length=100)
    model = serializers.CharField(max_length=100)
    variant = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    color = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    priority = serializers.ChoiceField(choices=Priority.choices, default=Priority.NORMAL)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_serial_number(self, value: str) -> str:
        value = value.strip()
        if Cycle.objects.filter(serial_number=value).exists():
            raise serializers.ValidationError("A cycle with this serial number already exists.")
        return value


class CycleEventSerializer(serializers.ModelSerializer):
    performed_by = serializers.CharField(source="performed_by.user_code", read_only=True, default=None)

    class Meta:
        model = CycleEvent
        fields = (
            "id",
            "from_status",
            "to_status",
            "performed_by",
            "role",
            "comment",
            "created_at",
        )
        read_only_fields = fields


class TransitionRequestSerializer(serializers.Serializer):
    to_status = serializers.CharField(required=False)
    status = serializers.CharField(required=False)
    comment = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        target = attrs.get("to_status") or attrs.get("status")
        if not target:
            raise serializers.ValidationError({"to_status": "This field is required."})
        attrs["to_status"] = target
        return attrs


class DispatchSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ValidateTransitionSerializer(serializers.Serializer):
    cycle_id = serializers.IntegerField(required=False, allow_null=True)
    current_status = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    requested_status = serializers.CharField()
    role = serializers.CharField(required=False)


# ===============================================================
# Assignments
# ===============================================================

class AssignmentSerializer(serializers.ModelSerializer):
    cycle_serial = serializers.CharField(source="cycle.serial_number", read_only=True)
    cycle_status = serializers.CharField(source="cycle.status", read_only=True)
    technician = ProfileSlimSerializer(read_only=True)
    assigned_by = ProfileSlimSerializer(read_only=True)

    class Meta:
        model = Assignment
        fields = (
            "id",
            "cycle",
            "cycle_serial",
            "cycle_status",
            "technician",
            "assigned_by",
            "status",
            "assigned_at",
            "started_at",
            "completed_at",
            "due_date",
            "reassignment_reason",
        )
        read_only_fields = fields


class AssignmentCreateSerializer(serializers.Serializer):
    cycle = serializers.IntegerField()
    technician = serializers.IntegerField()
    due_date = serializers.DateField(required=False, allow_null=True)


class ReassignSerializer(serializers.Serializer):
    technician = serializers.IntegerField()
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)


class DueDateSerializer(serializers.Serializer):
    due_date = serializers.DateField(allow_null=True)


# ===============================================================
# QC
# ===============================================================

class QcResultInputSerializer(serializers.Serializer):
    # Free text on purpose: pass/passed/fail/failed are normalized downstream.
    result = serializers.CharField()
    score = serializers.JSONField(required=False, allow_null=True)
    defects = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    is_override = serializers.BooleanField(required=False, default=False)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    photos = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class QcLogSerializer(serializers.ModelSerializer):
    cycle_serial = serializers.CharField(source="cycle.serial_number", read_only=True)
    inspector = ProfileSlimSerializer(read_only=True)

    class Meta:
        model = QcLog
        fields = (
            "id",
            "cycle",
            "cycle_serial",
            "inspector",
            "result",
            "overall_score",
            "defects_found",
            "notes",
            "photos",
            "is_override",
            "inspected_at",
        )
        read_only_fields = fields


# ===============================================================
# Checklists
# ===============================================================

class ChecklistTemplateItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = ChecklistTemplateItem
        fields = ("id", "item_name", "description", "item_order", "is_required")
        read_only_fields = ("id", "item_order")


class ChecklistTemplateSerializer(serializers.ModelSerializer):
    items = ChecklistTemplateItemSerializer(many=True, read_only=True)

    class Meta:
        model = ChecklistTemplate
        fields = ("id", "name", "type", "model", "is_active", "items", "created_at")
        read_only_fields = ("id", "type", "items", "created_at")


class ChecklistTemplateCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    type = serializers.ChoiceField(choices=ChecklistType.choices)
    model = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    items = serializers.ListField(child=serializers.JSONField(), required=False, default=list)


class TemplateItemCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    is_required = serializers.BooleanField(required=False, default=True)


class TemplateItemUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    is_required = serializers.BooleanField(required=False)
    position = serializers.IntegerField(required=False, min_value=1)


class ChecklistItemSerializer(serializers.ModelSerializer):
    completed_by = serializers.CharField(source="completed_by.user_code", read_only=True, default=None)

    class Meta:
        model = ChecklistItem
        fields = (
            "id",
            "item_name",
            "item_order",
            "is_required",
            "is_completed",
            "completed_by",
            "completed_at",
            "notes",
            "photo_url",
        )
        read_only_fields = fields


class ChecklistSerializer(serializers.ModelSerializer):
    template_name = serializers.CharField(source="template.name", read_only=True)
    items = ChecklistItemSerializer(many=True, read_only=True)

    class Meta:
        model = Checklist
        fields = ("id", "cycle", "template", "template_name", "type", "items", "created_at")
        read_only_fields = fields


class ChecklistInstantiateSerializer(serializers.Serializer):
    cycle = serializers.IntegerField()
    template = serializers.IntegerField()


class ItemCompletionSerializer(serializers.Serializer):
    is_completed = serializers.BooleanField(default=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    photo_url = serializers.URLField(required=False, allow_blank=True, allow_null=True)


# ===============================================================
# AuditLog (READ-ONLY)
# ===============================================================

class AuditLogSerializer(serializers.ModelSerializer):
    user_code = serializers.CharField(source="user.user_code", read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = (
            "id",
            "user",
            "user_code",
            "action",
            "table_name",
            "record_id",
            "old_values",
            "new_values",
            "reason",
            "created_at",
        )
        read_only_fields = fields
