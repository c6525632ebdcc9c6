# assembly_core/tests/test_transition_table.py

import itertools

import pytest

from assembly_core.workflows import (
    ACTOR_ROLES,
    CYCLE_STATES,
    CYCLE_TRANSITIONS,
    TERMINAL_STATES,
    allowed_next_states,
    allowed_transitions,
    enforce_transition,
    normalize_role,
    normalize_status,
    required_roles,
    validate_reassignment,
    validate_transition,
    workflow_definition,
)
from assembly_core.workflows.errors import (
    InvalidTransition,
    TerminalStateViolation,
    UnauthorizedRole,
)

SOURCES = [None] + sorted(CYCLE_STATES)
GRID = list(itertools.product(SOURCES, sorted(CYCLE_STATES), sorted(ACTOR_ROLES)))


def _expected_error(src, tgt, role):
    if src in TERMINAL_STATES:
        return TerminalStateViolation
    rule = CYCLE_TRANSITIONS.get((src, tgt))
    if rule is None:
        return InvalidTransition
    if role not in rule.roles:
        return UnauthorizedRole
    return None


@pytest.mark.parametrize("src,tgt,role", GRID)
def test_every_triple_matches_the_table(src, tgt, role):
    decision = validate_transition(1, src, tgt, role)
    expected = _expected_error(src, tgt, role)

    if expected is None:
        assert decision.accepted
        assert bool(decision) is True
        assert decision.error is None
    else:
        assert not decision.accepted
        assert decision.error is expected
        assert decision.rule
        with pytest.raises(expected):
            decision.raise_if_rejected()


@pytest.mark.parametrize("tgt,role", list(itertools.product(sorted(CYCLE_STATES), sorted(ACTOR_ROLES))))
def test_dispatched_has_no_accepted_exit(tgt, role):
    decision = validate_transition(7, "dispatched", tgt, role)
    assert not decision.accepted
    assert decision.error is TerminalStateViolation


def test_table_edges_and_roles():
    expected = {
        (None, "pending"): {"admin"},
        ("pending", "assigned"): {"supervisor", "admin"},
        ("assigned", "in_progress"): {"technician"},
        ("in_progress", "qc_pending"): {"technician"},
        ("qc_pending", "qc_passed"): {"qc", "admin"},
        ("qc_pending", "qc_failed"): {"qc", "admin"},
        ("qc_failed", "qc_passed"): {"admin"},
        ("qc_failed", "qc_failed"): {"admin"},
        ("qc_passed", "ready_for_dispatch"): {"system"},
        ("ready_for_dispatch", "dispatched"): {"sales", "admin"},
    }
    assert {edge: set(rule.roles) for edge, rule in CYCLE_TRANSITIONS.items()} == expected


def test_input_is_normalized_before_checking():
    assert validate_transition(1, " QC Pending ", "qc-passed", "Quality Control").accepted
    assert validate_transition(1, "Ready For Dispatch", "DISPATCHED", "Sales").accepted
    assert normalize_status("In Progress") == "in_progress"
    assert normalize_role("QA") == "qc"
    assert normalize_role("tech") == "technician"


def test_unknown_states_are_invalid_transitions():
    decision = validate_transition(1, "assembled", "qc_pending", "technician")
    assert decision.error is InvalidTransition
    assert decision.rule == "unknown_state:assembled"

    decision = validate_transition(1, "pending", "", "admin")
    assert decision.error is InvalidTransition


def test_unknown_role_is_unauthorized():
    with pytest.raises(UnauthorizedRole) as exc:
        enforce_transition(3, "pending", "assigned", "janitor")
    assert exc.value.rule == "role:pending->assigned"


def test_allowed_transitions_by_role():
    assert allowed_transitions("qc_pending", "qc") == ["qc_failed", "qc_passed"]
    assert allowed_transitions("qc_failed", "qc") == []
    assert allowed_transitions("qc_failed", "admin") == ["qc_failed", "qc_passed"]
    assert allowed_transitions("dispatched", "admin") == []
    assert allowed_next_states("ready_for_dispatch") == ["dispatched"]

    full = allowed_transitions()
    assert set(full) == set(CYCLE_STATES)
    assert full["dispatched"] == []


def test_required_roles_raises_for_missing_edge():
    assert required_roles("ready_for_dispatch", "dispatched") == ["admin", "sales"]
    with pytest.raises(InvalidTransition):
        required_roles("pending", "dispatched")


class TestReassignmentRule:
    def test_allowed_from_assigned_and_in_progress(self):
        assert validate_reassignment(1, "assigned", "supervisor").accepted
        assert validate_reassignment(1, "in_progress", "admin").accepted

    def test_rejections(self):
        assert validate_reassignment(1, "qc_pending", "supervisor").error is InvalidTransition
        assert validate_reassignment(1, "in_progress", "technician").error is UnauthorizedRole
        assert validate_reassignment(1, "dispatched", "admin").error is TerminalStateViolation


def test_definition_is_serializable_shape():
    definition = workflow_definition()
    assert definition["initial"] == "pending"
    assert definition["terminal"] == ["dispatched"]
    assert len(definition["transitions"]) == len(CYCLE_TRANSITIONS)
    overrides = [t for t in definition["transitions"] if t["override"]]
    assert {t["from"] for t in overrides} == {"qc_failed"}
