# assembly_core/workflows/__init__.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Type

from .errors import (
    InvalidTransition,
    TerminalStateViolation,
    UnauthorizedRole,
    WorkflowError,
)
from .states import SYSTEM_ACTOR, CycleStatus, RoleName


# ===============================================================
# Canonical cycle workflow
# ===============================================================

CYCLE_STATES: FrozenSet[str] = frozenset(CycleStatus.values)
TERMINAL_STATES: FrozenSet[str] = frozenset({CycleStatus.DISPATCHED.value})
INITIAL_STATE: str = CycleStatus.PENDING.value

# Every role that may appear as an actor on a transition edge.
ACTOR_ROLES: FrozenSet[str] = frozenset(RoleName.values) | {SYSTEM_ACTOR}


@dataclass(frozen=True)
class TransitionRule:
    source: Optional[str]
    target: str
    roles: FrozenSet[str]
    trigger: str
    override: bool = False

    @property
    def name(self) -> str:
        return f"{self.source or 'none'}->{self.target}"


_RULES: Tuple[TransitionRule, ...] = (
    TransitionRule(None, CycleStatus.PENDING, frozenset({RoleName.ADMIN}), "cycle created"),
    TransitionRule(
        CycleStatus.PENDING,
        CycleStatus.ASSIGNED,
        frozenset({RoleName.SUPERVISOR, RoleName.ADMIN}),
        "assignment created",
    ),
    TransitionRule(
        CycleStatus.ASSIGNED,
        CycleStatus.IN_PROGRESS,
        frozenset({RoleName.TECHNICIAN}),
        "technician starts work",
    ),
    TransitionRule(
        CycleStatus.IN_PROGRESS,
        CycleStatus.QC_PENDING,
        frozenset({RoleName.TECHNICIAN}),
        "technician completes work",
    ),
    TransitionRule(
        CycleStatus.QC_PENDING,
        CycleStatus.QC_PASSED,
        frozenset({RoleName.QC, RoleName.ADMIN}),
        "inspection passed",
    ),
    TransitionRule(
        CycleStatus.QC_PENDING,
        CycleStatus.QC_FAILED,
        frozenset({RoleName.QC, RoleName.ADMIN}),
        "inspection failed",
    ),
    TransitionRule(
        CycleStatus.QC_FAILED,
        CycleStatus.QC_PASSED,
        frozenset({RoleName.ADMIN}),
        "admin override",
        override=True,
    ),
    TransitionRule(
        CycleStatus.QC_FAILED,
        CycleStatus.QC_FAILED,
        frozenset({RoleName.ADMIN}),
        "admin override",
        override=True,
    ),
    TransitionRule(
        CycleStatus.QC_PASSED,
        CycleStatus.READY_FOR_DISPATCH,
        frozenset({SYSTEM_ACTOR}),
        "automatic on pass",
    ),
    TransitionRule(
        CycleStatus.READY_FOR_DISPATCH,
        CycleStatus.DISPATCHED,
        frozenset({RoleName.SALES, RoleName.ADMIN}),
        "dispatch confirmed",
    ),
)


def _plain(rule: TransitionRule) -> TransitionRule:
    # TextChoices members compare equal to their values, but keep the
    # table keyed by plain strings so lookups never depend on enum identity.
    return TransitionRule(
        source=str(rule.source) if rule.source is not None else None,
        target=str(rule.target),
        roles=frozenset(str(r) for r in rule.roles),
        trigger=rule.trigger,
        override=rule.override,
    )


CYCLE_TRANSITIONS: Dict[Tuple[Optional[str], str], TransitionRule] = {
    (r.source, r.target): r for r in (_plain(rule) for rule in _RULES)
}

# Reassignment resets the cycle to "assigned" from these states.
REASSIGNABLE_STATES: FrozenSet[str] = frozenset(
    {CycleStatus.ASSIGNED.value, CycleStatus.IN_PROGRESS.value}
)
REASSIGNMENT_ROLES: FrozenSet[str] = frozenset(
    {RoleName.SUPERVISOR.value, RoleName.ADMIN.value}
)


# ===============================================================
# Normalization
# ===============================================================

ROLE_ALIASES: Dict[str, str] = {
    "admin": RoleName.ADMIN.value,
    "administrator": RoleName.ADMIN.value,
    "superuser": RoleName.ADMIN.value,
    "supervisor": RoleName.SUPERVISOR.value,
    "line_supervisor": RoleName.SUPERVISOR.value,
    "technician": RoleName.TECHNICIAN.value,
    "tech": RoleName.TECHNICIAN.value,
    "assembler": RoleName.TECHNICIAN.value,
    "qc": RoleName.QC.value,
    "qa": RoleName.QC.value,
    "quality_control": RoleName.QC.value,
    "inspector": RoleName.QC.value,
    "sales": RoleName.SALES.value,
    "system": SYSTEM_ACTOR,
}


def _slug(value: Any) -> str:
    raw = str(value or "").strip().lower()
    raw = re.sub(r"[\s\-]+", "_", raw)
    return re.sub(r"_+", "_", raw)


def normalize_status(value: Any) -> str:
    return _slug(value)


def normalize_role(value: Any) -> str:
    """
    Canonicalize role strings ("Quality Control", "QA", "tech") so small
    formatting differences do not break permission checks. Unknown roles
    are returned cleaned but unmapped, and are rejected downstream.
    """
    r = _slug(value)
    return ROLE_ALIASES.get(r, r)


def is_terminal(status: Any) -> bool:
    return normalize_status(status) in TERMINAL_STATES


# ===============================================================
# Decisions
# ===============================================================

@dataclass(frozen=True)
class TransitionDecision:
    cycle_id: Any
    current: Optional[str]
    requested: str
    role: str
    accepted: bool
    reason: str = ""
    rule: str = ""
    error: Optional[Type[WorkflowError]] = field(default=None, compare=False)

    def __bool__(self) -> bool:
        return self.accepted

    def raise_if_rejected(self) -> "TransitionDecision":
        if not self.accepted and self.error is not None:
            raise self.error(self.reason, rule=self.rule)
        return self


def _reject(cycle_id, cur, tgt, role, error, reason, rule) -> TransitionDecision:
    return TransitionDecision(
        cycle_id=cycle_id,
        current=cur,
        requested=tgt,
        role=role,
        accepted=False,
        reason=reason,
        rule=rule,
        error=error,
    )


def validate_transition(
    cycle_id: Any,
    current_status: Optional[str],
    requested_status: str,
    acting_role: str,
) -> TransitionDecision:
    """
    Pure check of one requested cycle status change.

    `current_status` of None (or blank) means the cycle does not exist yet.
    Returns an accepted decision, or a rejected one carrying the error class
    and the violated rule. Never touches the database.
    """
    cur = normalize_status(current_status) or None
    tgt = normalize_status(requested_status)
    role = normalize_role(acting_role)
    edge = f"{cur or 'none'}->{tgt}"

    if cur in TERMINAL_STATES:
        return _reject(
            cycle_id, cur, tgt, role,
            TerminalStateViolation,
            f"Cycle is in terminal state '{cur}' and cannot be modified.",
            f"terminal:{cur}",
        )

    if cur is not None and cur not in CYCLE_STATES:
        return _reject(
            cycle_id, cur, tgt, role,
            InvalidTransition,
            f"Unknown cycle state: {cur}",
            f"unknown_state:{cur}",
        )

    if tgt not in CYCLE_STATES:
        return _reject(
            cycle_id, cur, tgt, role,
            InvalidTransition,
            f"Unknown cycle state: {tgt or '<blank>'}",
            f"unknown_state:{tgt}",
        )

    rule = CYCLE_TRANSITIONS.get((cur, tgt))
    if rule is None:
        return _reject(
            cycle_id, cur, tgt, role,
            InvalidTransition,
            f"Invalid cycle transition: {cur or 'none'} -> {tgt}",
            f"edge:{edge}",
        )

    if role not in rule.roles:
        allowed = ", ".join(sorted(rule.roles))
        return _reject(
            cycle_id, cur, tgt, role,
            UnauthorizedRole,
            f"Role '{role or 'none'}' cannot perform cycle transition {edge} "
            f"(requires: {allowed})",
            f"role:{edge}",
        )

    return TransitionDecision(
        cycle_id=cycle_id,
        current=cur,
        requested=tgt,
        role=role,
        accepted=True,
        rule=rule.name,
    )


def enforce_transition(
    cycle_id: Any,
    current_status: Optional[str],
    requested_status: str,
    acting_role: str,
) -> TransitionDecision:
    """Same as validate_transition, but raises the rejection."""
    return validate_transition(
        cycle_id, current_status, requested_status, acting_role
    ).raise_if_rejected()


def validate_reassignment(cycle_id: Any, current_status: str, acting_role: str) -> TransitionDecision:
    """
    Reassignment is a compound action outside the transition table:
    it resets the cycle to "assigned" while work is assigned or underway.
    """
    cur = normalize_status(current_status)
    role = normalize_role(acting_role)
    tgt = CycleStatus.ASSIGNED.value

    if cur in TERMINAL_STATES:
        return _reject(
            cycle_id, cur, tgt, role,
            TerminalStateViolation,
            f"Cycle is in terminal state '{cur}' and cannot be reassigned.",
            f"terminal:{cur}",
        )

    if cur not in REASSIGNABLE_STATES:
        return _reject(
            cycle_id, cur, tgt, role,
            InvalidTransition,
            f"Cycle in state '{cur}' cannot be reassigned.",
            f"reassign:{cur}",
        )

    if role not in REASSIGNMENT_ROLES:
        return _reject(
            cycle_id, cur, tgt, role,
            UnauthorizedRole,
            f"Role '{role or 'none'}' cannot reassign cycles.",
            "role:reassign",
        )

    return TransitionDecision(
        cycle_id=cycle_id,
        current=cur,
        requested=tgt,
        role=role,
        accepted=True,
        rule=f"reassign:{cur}",
    )


# ===============================================================
# Introspection
# ===============================================================

def allowed_next_states(current: Optional[str]) -> List[str]:
    """
    Canonical next states only, independent of role.
    """
    cur = normalize_status(current) or None
    return sorted(tgt for (src, tgt) in CYCLE_TRANSITIONS if src == cur)


def allowed_transitions(current: Optional[str] = None, role: Optional[str] = None) -> Any:
    """
    1) allowed_transitions() -> Dict[state, List[next_state]]
    2) allowed_transitions("qc_pending", "qc") -> List[next_state] for that role
    """
    if current is None and role is None:
        out: Dict[str, List[str]] = {state: [] for state in sorted(CYCLE_STATES)}
        for (src, tgt) in CYCLE_TRANSITIONS:
            if src is not None:
                out[src].append(tgt)
        return {state: sorted(nxt) for state, nxt in out.items()}

    nxt = allowed_next_states(current)
    if role is None:
        return nxt

    return sorted(
        tgt for tgt in nxt
        if validate_transition(None, current, tgt, role).accepted
    )


def required_roles(current: Optional[str], target: str) -> List[str]:
    """
    Roles that can perform current -> target. Raises for unknown edges.
    """
    cur = normalize_status(current) or None
    tgt = normalize_status(target)
    rule = CYCLE_TRANSITIONS.get((cur, tgt))
    if rule is None:
        raise InvalidTransition(
            f"Invalid cycle transition: {cur or 'none'} -> {tgt}",
            rule=f"edge:{cur or 'none'}->{tgt}",
        )
    return sorted(rule.roles)


def workflow_definition() -> Dict[str, Any]:
    """
    Stable JSON-serializable definition for clients.
    """
    return {
        "kind": "cycle",
        "initial": INITIAL_STATE,
        "states": [s for s in CycleStatus.values],
        "terminal": sorted(TERMINAL_STATES),
        "transitions": [
            {
                "from": rule.source,
                "to": rule.target,
                "roles": sorted(rule.roles),
                "trigger": rule.trigger,
                "override": rule.override,
            }
            for rule in CYCLE_TRANSITIONS.values()
        ],
    }


__all__ = [
    "CYCLE_STATES",
    "CYCLE_TRANSITIONS",
    "TERMINAL_STATES",
    "INITIAL_STATE",
    "ACTOR_ROLES",
    "REASSIGNABLE_STATES",
    "TransitionRule",
    "TransitionDecision",
    "normalize_status",
    "normalize_role",
    "is_terminal",
    "validate_transition",
    "enforce_transition",
    "validate_reassignment",
    "allowed_next_states",
    "allowed_transitions",
    "required_roles",
    "workflow_definition",
]
