# assembly_core/workflows/checklists.py
"""
Checklist templates, their per-cycle instances, and the completion gate
checked before a technician may hand a cycle over to QC.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from assembly_core.models import (
    Checklist,
    ChecklistItem,
    ChecklistTemplate,
    ChecklistTemplateItem,
    Cycle,
)
from assembly_core.services.db import translate_db_errors
from assembly_core.workflows.errors import ChecklistIncomplete, UnauthorizedRole
from assembly_core.workflows.executor import ensure_not_terminal
from assembly_core.workflows.states import (
    ACTIVE_ASSIGNMENT_STATUSES,
    ChecklistType,
    RoleName,
)

logger = logging.getLogger(__name__)


# Which role works each checklist type. Admin may complete any item.
CHECKLIST_ROLES: Dict[str, str] = {
    ChecklistType.TECHNICIAN_ASSEMBLY.value: RoleName.TECHNICIAN.value,
    ChecklistType.SUPERVISOR_REVIEW.value: RoleName.SUPERVISOR.value,
    ChecklistType.QC_INSPECTION.value: RoleName.QC.value,
}

_missing = set(ChecklistType.values) - set(CHECKLIST_ROLES)
if _missing:
    raise RuntimeError(f"Checklist types without a role: {sorted(_missing)}")


def _require_role(ctx, roles: Iterable[str], action: str) -> None:
    allowed = {str(r) for r in roles}
    if ctx.role not in allowed:
        raise UnauthorizedRole(
            f"Role '{ctx.role}' cannot {action} (requires: {', '.join(sorted(allowed))})",
            rule=f"role:{action.replace(' ', '_')}",
        )


def _item_rows(items: Iterable[Any]) -> List[Dict[str, Any]]:
    rows = []
    for item in items or []:
        if isinstance(item, str):
            item = {"name": item}
        name = str(item.get("name") or item.get("item_name") or "").strip()
        if not name:
            raise ValidationError({"items": "Every checklist item needs a name."})
        rows.append(
            {
                "item_name": name,
                "description": item.get("description") or "",
                "is_required": bool(item.get("is_required", True)),
            }
        )
    return rows


# ===============================================================
# Templates
# ===============================================================

@translate_db_errors
def create_checklist_template(
    ctx,
    *,
    name: str,
    checklist_type: str,
    items: Iterable[Any] = (),
    model: str = "",
) -> ChecklistTemplate:
    _require_role(ctx, {RoleName.ADMIN}, "manage checklist templates")

    if checklist_type not in ChecklistType.values:
        raise ValidationError({"type": f"Unknown checklist type: {checklist_type}"})

    rows = _item_rows(items)

    with transaction.atomic():
        template = ChecklistTemplate.objects.create(
            name=name,
            type=checklist_type,
            model=model or "",
            is_active=True,
            created_by=ctx.profile,
        )
        ChecklistTemplateItem.objects.bulk_create(
            [
                ChecklistTemplateItem(template=template, item_order=index, **row)
                for index, row in enumerate(rows, start=1)
            ]
        )

    return template


@translate_db_errors
def add_template_item(ctx, template_id, *, name: str, description: str = "", is_required: bool = True):
    _require_role(ctx, {RoleName.ADMIN}, "manage checklist templates")

    with transaction.atomic():
        template = get_object_or_404(ChecklistTemplate.objects.select_for_update(), pk=template_id)
        last = template.items.order_by("-item_order").values_list("item_order", flat=True).first()
        return ChecklistTemplateItem.objects.create(
            template=template,
            item_name=name,
            description=description or "",
            is_required=is_required,
            item_order=(last or 0) + 1,
        )


def _renumber(ordered: List[ChecklistTemplateItem]) -> None:
    # Two passes: (template, item_order) is unique.
    offset = max((it.item_order for it in ordered), default=0) + 1
    for index, it in enumerate(ordered):
        ChecklistTemplateItem.objects.filter(pk=it.pk).update(item_order=offset + index)
    for index, it in enumerate(ordered, start=1):
        ChecklistTemplateItem.objects.filter(pk=it.pk).update(item_order=index)
        it.item_order = index


@translate_db_errors
def update_template_item(
    ctx,
    template_id,
    item_id,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    is_required: Optional[bool] = None,
    position: Optional[int] = None,
) -> ChecklistTemplateItem:
    """
    Rename, describe, toggle required or move one template item.

    Checklists already attached to cycles keep their own copies.
    """
    _require_role(ctx, {RoleName.ADMIN}, "manage checklist templates")

    with transaction.atomic():
        template = get_object_or_404(ChecklistTemplate.objects.select_for_update(), pk=template_id)
        item = get_object_or_404(template.items.all(), pk=item_id)

        update_fields = []
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError({"name": "Checklist items need a name."})
            item.item_name = name
            update_fields.append("item_name")
        if description is not None:
            item.description = description
            update_fields.append("description")
        if is_required is not None:
            item.is_required = bool(is_required)
            update_fields.append("is_required")
        if update_fields:
            item.save(update_fields=update_fields)

        if position is not None:
            others = [it for it in template.items.order_by("item_order", "id") if it.pk != item.pk]
            position = max(1, min(int(position), len(others) + 1))
            others.insert(position - 1, item)
            _renumber(others)

    logger.info("Template '%s' item #%s updated by %s", template.name, item.pk, ctx.user_code)
    return item


@translate_db_errors
def remove_template_item(ctx, template_id, item_id) -> None:
    """
    Delete one template item and close the gap in item_order.
    """
    _require_role(ctx, {RoleName.ADMIN}, "manage checklist templates")

    with transaction.atomic():
        template = get_object_or_404(ChecklistTemplate.objects.select_for_update(), pk=template_id)
        item = get_object_or_404(template.items.all(), pk=item_id)
        item.delete()
        _renumber(list(template.items.order_by("item_order", "id")))

    logger.info("Template '%s' item #%s removed by %s", template.name, item_id, ctx.user_code)


def templates_for_cycle(cycle: Cycle, checklist_type: Optional[str] = None):
    qs = ChecklistTemplate.objects.filter(is_active=True).filter(
        Q(model="") | Q(model__iexact=cycle.model)
    )
    if checklist_type:
        qs = qs.filter(type=checklist_type)
    return qs.order_by("created_at", "id")


# ===============================================================
# Instances
# ===============================================================

def _instantiate(cycle: Cycle, template: ChecklistTemplate) -> Checklist:
    checklist, created = Checklist.objects.get_or_create(
        cycle=cycle,
        template=template,
        defaults={"type": template.type},
    )
    if created:
        ChecklistItem.objects.bulk_create(
            [
                ChecklistItem(
                    checklist=checklist,
                    template_item=ti,
                    item_name=ti.item_name,
                    item_order=ti.item_order,
                    is_required=ti.is_required,
                )
                for ti in template.items.all()
            ]
        )
        logger.info("Checklist '%s' attached to cycle %s", template.name, cycle.serial_number)
    return checklist


@translate_db_errors
def instantiate_checklist(ctx, cycle_id, template_id) -> Checklist:
    _require_role(ctx, {RoleName.SUPERVISOR, RoleName.ADMIN}, "attach checklists")

    with transaction.atomic():
        cycle = get_object_or_404(Cycle.objects.select_for_update(), pk=cycle_id)
        ensure_not_terminal(cycle)

        template = get_object_or_404(ChecklistTemplate, pk=template_id)
        if not template.is_active:
            raise ValidationError({"template": "Checklist template is inactive."})
        if template.model and template.model.lower() != cycle.model.lower():
            raise ValidationError(
                {"template": f"Template applies to model '{template.model}', not '{cycle.model}'."}
            )

        return _instantiate(cycle, template)


def attach_default_checklists(cycle: Cycle) -> List[Checklist]:
    """
    Attach every active technician assembly template that fits the cycle.
    Called when a cycle is assigned; idempotent.
    """
    return [
        _instantiate(cycle, template)
        for template in templates_for_cycle(cycle, ChecklistType.TECHNICIAN_ASSEMBLY)
    ]


@translate_db_errors
def set_checklist_item_completion(
    ctx,
    item_id,
    is_completed: bool,
    notes: Optional[str] = None,
    photo_url: Optional[str] = None,
) -> ChecklistItem:
    with transaction.atomic():
        item = get_object_or_404(
            ChecklistItem.objects.select_for_update().select_related("checklist__cycle"),
            pk=item_id,
        )
        checklist = item.checklist
        cycle = checklist.cycle
        ensure_not_terminal(cycle)

        if ctx.role != RoleName.ADMIN:
            _require_role(ctx, {CHECKLIST_ROLES[checklist.type]}, f"complete {checklist.type} items")

            if checklist.type == ChecklistType.TECHNICIAN_ASSEMBLY:
                owns_active = cycle.assignments.filter(
                    technician=ctx.profile,
                    status__in=ACTIVE_ASSIGNMENT_STATUSES,
                ).exists()
                if not owns_active:
                    raise UnauthorizedRole(
                        f"Cycle {cycle.serial_number} is not assigned to {ctx.user_code}.",
                        rule="assignment:owner",
                    )

        item.is_completed = bool(is_completed)
        item.completed_at = timezone.now() if item.is_completed else None
        item.completed_by = ctx.profile if item.is_completed else None

        update_fields = ["is_completed", "completed_at", "completed_by"]
        if notes is not None:
            item.notes = notes
            update_fields.append("notes")
        if photo_url is not None:
            item.photo_url = photo_url
            update_fields.append("photo_url")

        item.save(update_fields=update_fields)

    return item


# ===============================================================
# Gate
# ===============================================================

def open_required_items(cycle: Cycle, checklist_type: str = ChecklistType.TECHNICIAN_ASSEMBLY) -> List[str]:
    return list(
        ChecklistItem.objects.filter(
            checklist__cycle=cycle,
            checklist__type=checklist_type,
            is_required=True,
            is_completed=False,
        )
        .order_by("checklist_id", "item_order")
        .values_list("item_name", flat=True)
    )


def enforce_checklist_gate(cycle: Cycle) -> None:
    missing = open_required_items(cycle)
    if missing:
        raise ChecklistIncomplete(
            f"Cycle {cycle.serial_number} has {len(missing)} required checklist "
            f"item(s) open: {', '.join(missing)}",
            rule="checklist:technician_assembly",
        )
