# assembly_core/workflows/qc.py
"""
QC decision logic.

Result tokens are normalized here and nowhere else:
    pass | passed -> passed
    fail | failed -> failed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from django.db import transaction

from assembly_core.models import QcLog
from assembly_core.services.audit import record_audit
from assembly_core.services.db import translate_db_errors
from assembly_core.workflows import enforce_transition
from assembly_core.workflows.errors import InvalidQcResult, UnauthorizedRole
from assembly_core.workflows.executor import lock_cycle, move_cycle
from assembly_core.workflows.states import SYSTEM_ACTOR, CycleStatus, QcResult, RoleName

logger = logging.getLogger(__name__)


QC_RESULT_SYNONYMS = {
    "pass": QcResult.PASSED.value,
    "passed": QcResult.PASSED.value,
    "fail": QcResult.FAILED.value,
    "failed": QcResult.FAILED.value,
}

RESULT_TO_STATUS = {
    QcResult.PASSED.value: CycleStatus.QC_PASSED.value,
    QcResult.FAILED.value: CycleStatus.QC_FAILED.value,
}


@dataclass(frozen=True)
class QcOutcome:
    previous_status: str
    new_status: str
    qc_log: QcLog


def normalize_qc_result(raw: Any) -> str:
    token = str(raw or "").strip().lower()
    try:
        return QC_RESULT_SYNONYMS[token]
    except KeyError:
        raise InvalidQcResult(
            f"Unknown QC result '{raw}'. Use pass/passed or fail/failed.",
            rule="qc:result",
        ) from None


def _clean_score(score: Any) -> Optional[int]:
    if score is None or score == "":
        return None
    if isinstance(score, bool):
        raise InvalidQcResult("Score must be a number between 0 and 100.", rule="qc:score")
    try:
        value = float(score)
    except (TypeError, ValueError):
        raise InvalidQcResult("Score must be a number between 0 and 100.", rule="qc:score") from None
    if not value.is_integer() or not 0 <= value <= 100:
        raise InvalidQcResult(
            f"Score {score} is outside 0..100 or not a whole number.",
            rule="qc:score",
        )
    return int(value)


def _clean_list(values: Optional[Iterable[Any]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values if str(v).strip()]


@translate_db_errors
def apply_qc_result(
    ctx,
    cycle_id,
    raw_result: Any,
    score: Any = None,
    defects: Optional[Iterable[Any]] = None,
    notes: Optional[str] = None,
    is_override: bool = False,
    reason: Optional[str] = None,
    photos: Optional[Iterable[Any]] = None,
) -> QcOutcome:
    """
    Record one inspection and move the cycle accordingly.

    A pass auto-advances qc_passed -> ready_for_dispatch in the same
    transaction, so no cycle is ever left in qc_passed.

    Only admins may override. Admin decisions are always recorded as
    overrides and written to the audit log.
    """
    result = normalize_qc_result(raw_result)
    clean_score = _clean_score(score)
    clean_defects = _clean_list(defects)
    clean_photos = _clean_list(photos)

    if is_override and ctx.role != RoleName.ADMIN:
        raise UnauthorizedRole(
            "Only admins may override QC decisions.",
            rule="qc:override",
        )
    override = bool(is_override) or ctx.role == RoleName.ADMIN
    target = RESULT_TO_STATUS[result]

    with transaction.atomic():
        cycle = lock_cycle(cycle_id)
        previous = cycle.status

        enforce_transition(cycle.pk, previous, target, ctx.role)

        if previous == CycleStatus.QC_FAILED and not (reason or "").strip():
            raise InvalidQcResult(
                "Overriding a failed inspection requires a reason.",
                rule="qc:override_reason",
            )

        log_notes = notes or ""
        if override and not log_notes and reason:
            log_notes = f"Admin override: {reason}"

        qc_log = QcLog.objects.create(
            cycle=cycle,
            inspector=ctx.profile,
            result=result,
            overall_score=clean_score,
            defects_found=clean_defects,
            notes=log_notes,
            photos=clean_photos,
            is_override=override,
        )

        move_cycle(
            cycle,
            target,
            role=ctx.role,
            performed_by=ctx.profile,
            comment=f"QC {result}" + (" (override)" if override else ""),
        )

        if target == CycleStatus.QC_PASSED:
            move_cycle(
                cycle,
                CycleStatus.READY_FOR_DISPATCH,
                role=SYSTEM_ACTOR,
                performed_by=None,
                comment="Automatic on QC pass",
            )

        if override:
            record_audit(
                actor=ctx,
                action="QC_OVERRIDE",
                table_name="cycles",
                record_id=cycle.pk,
                old_values={"status": previous},
                new_values={
                    "status": cycle.status,
                    "result": result,
                    "qc_log_id": qc_log.pk,
                },
                reason=reason or notes or "",
            )

    if result == QcResult.FAILED:
        logger.info(
            "Cycle %s failed QC with %d defect(s)", cycle.serial_number, len(clean_defects)
        )

    return QcOutcome(previous_status=previous, new_status=cycle.status, qc_log=qc_log)
