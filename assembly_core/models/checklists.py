# assembly_core/models/checklists.py

from django.db import models

from assembly_core.workflows.states import ChecklistType

from .core import Cycle, Profile, TimeStampedModel


class ChecklistTemplate(TimeStampedModel):
    """Reusable ordered step list for one role context."""

    name = models.CharField(max_length=255)
    type = models.CharField(max_length=30, choices=ChecklistType.choices, db_index=True)
    model = models.CharField(
        max_length=100,
        blank=True,
        help_text="Cycle model this template applies to. Blank means any model.",
    )
    is_active = models.BooleanField(default=True, db_index=True)
    created_by = models.ForeignKey(
        Profile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checklist_templates",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.type})"


class ChecklistTemplateItem(models.Model):
    template = models.ForeignKey(
        ChecklistTemplate,
        on_delete=models.CASCADE,
        related_name="items",
    )
    item_name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    item_order = models.PositiveIntegerField()
    is_required = models.BooleanField(default=True)

    class Meta:
        ordering = ["item_order", "id"]
        unique_together = [("template", "item_order")]

    def __str__(self):
        return f"{self.item_order}. {self.item_name}"


class Checklist(TimeStampedModel):
    """A template instantiated against one cycle."""

    cycle = models.ForeignKey(Cycle, on_delete=models.CASCADE, related_name="checklists")
    template = models.ForeignKey(
        ChecklistTemplate,
        on_delete=models.PROTECT,
        related_name="checklists",
    )
    type = models.CharField(max_length=30, choices=ChecklistType.choices, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        unique_together = [("cycle", "template")]

    def __str__(self):
        return f"{self.cycle.serial_number}: {self.template.name}"

    def open_required_items(self):
        return self.items.filter(is_required=True, is_completed=False)


class ChecklistItem(models.Model):
    checklist = models.ForeignKey(Checklist, on_delete=models.CASCADE, related_name="items")
    template_item = models.ForeignKey(
        ChecklistTemplateItem,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="instances",
    )
    item_name = models.CharField(max_length=255)
    item_order = models.PositiveIntegerField()
    is_required = models.BooleanField(default=True)
    is_completed = models.BooleanField(default=False, db_index=True)
    completed_by = models.ForeignKey(
        Profile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checklist_items_completed",
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    photo_url = models.URLField(max_length=500, blank=True)

    class Meta:
        ordering = ["item_order", "id"]

    def __str__(self):
        mark = "x" if self.is_completed else " "
        return f"[{mark}] {self.item_name}"
