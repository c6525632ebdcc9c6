# assembly_core/services/audit.py
"""
Append-only audit writer.

Audit writes run in their own savepoint. By default a failed write is
logged and the primary mutation goes ahead; with CYCLE_AUDIT_STRICT the
failure propagates and rolls the whole operation back.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import DatabaseError, transaction

from assembly_core.models import AuditLog, Profile

logger = logging.getLogger(__name__)


def _audit_is_strict() -> bool:
    return bool(getattr(settings, "CYCLE_AUDIT_STRICT", False))


def _actor_profile(actor) -> Optional[Profile]:
    if actor is None:
        return None
    if isinstance(actor, Profile):
        return actor
    return getattr(actor, "profile", None)


def record_audit(
    *,
    actor,
    action: str,
    table_name: str,
    record_id: Any,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
    reason: str = "",
) -> Optional[AuditLog]:
    """
    `actor` is a Profile, an ActorContext, or None for system actions.
    """
    try:
        with transaction.atomic():
            entry = AuditLog.objects.create(
                user=_actor_profile(actor),
                action=action,
                table_name=table_name,
                record_id=str(record_id) if record_id is not None else "",
                old_values=old_values,
                new_values=new_values,
                reason=reason or "",
            )
    except DatabaseError:
        if _audit_is_strict():
            raise
        logger.exception(
            "Audit write failed for %s on %s:%s", action, table_name, record_id
        )
        return None

    logger.debug("Audit %s on %s:%s", action, table_name, record_id)
    return entry
