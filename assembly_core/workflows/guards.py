# assembly_core/workflows/guards.py

from django.core.exceptions import PermissionDenied
from django.db import models


class StatusWriteGuardMixin(models.Model):
    """
    Prevent direct modification of the workflow-controlled status field.

    Cycles must move through the workflow executor. A plain .save() that
    changes STATUS_FIELD on an existing row is blocked.

    Escape hatch:
      - pass _workflow_bypass=True to save(), OR
      - set instance._workflow_bypass = True
    Use sparingly (tests, data fixes).
    """

    STATUS_FIELD = "status"
    WORKFLOW_BYPASS_KWARG = "_workflow_bypass"

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        bypass = bool(
            kwargs.pop(self.WORKFLOW_BYPASS_KWARG, False)
            or getattr(self, "_workflow_bypass", False)
        )

        if not bypass and self.pk is not None and self.STATUS_FIELD:
            old = (
                self.__class__.objects.filter(pk=self.pk)
                .values_list(self.STATUS_FIELD, flat=True)
                .first()
            )
            new = getattr(self, self.STATUS_FIELD, None)

            if old is not None and old != new:
                raise PermissionDenied(
                    f"Direct modification of '{self.STATUS_FIELD}' is forbidden. "
                    "Use the cycle workflow operations."
                )

        return super().save(*args, **kwargs)


class AppendOnlyMixin(models.Model):
    """
    Rows are written once. Updates and deletes raise.
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if self.pk is not None and self.__class__.objects.filter(pk=self.pk).exists():
            raise PermissionDenied(
                f"{self.__class__.__name__} records are append-only."
            )
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied(
            f"{self.__class__.__name__} records are append-only."
        )
