# assembly_core/filters.py
import django_filters as df

from .models import Assignment, AuditLog, Cycle, Profile, QcLog
from .workflows.states import AssignmentStatus, CycleStatus, Priority, ProfileStatus, QcResult


class CycleFilter(df.FilterSet):
    serial_number = df.CharFilter(field_name="serial_number", lookup_expr="icontains")
    model = df.CharFilter(field_name="model", lookup_expr="icontains")
    status = df.MultipleChoiceFilter(choices=CycleStatus.choices)
    priority = df.ChoiceFilter(choices=Priority.choices)
    created_at = df.DateFromToRangeFilter()

    class Meta:
        model = Cycle
        fields = ["serial_number", "model", "status", "priority", "created_at"]


class AssignmentFilter(df.FilterSet):
    cycle = df.NumberFilter(field_name="cycle_id")
    technician = df.NumberFilter(field_name="technician_id")
    status = df.MultipleChoiceFilter(choices=AssignmentStatus.choices)
    due_date = df.DateFromToRangeFilter()

    class Meta:
        model = Assignment
        fields = ["cycle", "technician", "status", "due_date"]


class ProfileFilter(df.FilterSet):
    role = df.CharFilter(field_name="role__name")
    status = df.ChoiceFilter(choices=ProfileStatus.choices)
    full_name = df.CharFilter(field_name="full_name", lookup_expr="icontains")

    class Meta:
        model = Profile
        fields = ["role", "status", "full_name", "user_code"]


class QcLogFilter(df.FilterSet):
    cycle = df.NumberFilter(field_name="cycle_id")
    result = df.ChoiceFilter(choices=QcResult.choices)
    inspected_at = df.DateFromToRangeFilter()

    class Meta:
        model = QcLog
        fields = ["cycle", "result", "is_override", "inspected_at"]


class AuditLogFilter(df.FilterSet):
    action = df.CharFilter(field_name="action", lookup_expr="iexact")
    table_name = df.CharFilter(field_name="table_name")
    record_id = df.CharFilter(field_name="record_id")
    user = df.NumberFilter(field_name="user_id")
    created_at = df.DateFromToRangeFilter()

    class Meta:
        model = AuditLog
        fields = ["action", "table_name", "record_id", "user", "created_at"]
