from .core import (  # noqa: F401
    Assignment,
    Cycle,
    CycleEvent,
    Profile,
    Role,
    TimeStampedModel,
)
from .checklists import (  # noqa: F401
    Checklist,
    ChecklistItem,
    ChecklistTemplate,
    ChecklistTemplateItem,
)
from .inspection import AuditLog, QcLog  # noqa: F401
