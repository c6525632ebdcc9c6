# assembly_core/navigation.py
"""
Role -> dashboard navigation. Every role must be mapped.
"""

from __future__ import annotations

from typing import Dict, List

from .workflows import normalize_role
from .workflows.states import RoleName


NAVIGATION: Dict[str, List[Dict[str, str]]] = {
    RoleName.ADMIN.value: [
        {"path": "/admin/dashboard", "label": "Dashboard"},
        {"path": "/admin/users", "label": "User Management"},
        {"path": "/admin/cycles", "label": "All Cycles"},
        {"path": "/admin/checklists", "label": "Checklists"},
        {"path": "/admin/audit-logs", "label": "Audit Logs"},
    ],
    RoleName.SUPERVISOR.value: [
        {"path": "/supervisor/dashboard", "label": "Dashboard"},
        {"path": "/supervisor/assign", "label": "Assign Cycles"},
        {"path": "/supervisor/monitor", "label": "Monitor Progress"},
    ],
    RoleName.TECHNICIAN.value: [
        {"path": "/technician/dashboard", "label": "Dashboard"},
        {"path": "/technician/tasks", "label": "My Tasks"},
    ],
    RoleName.QC.value: [
        {"path": "/qc/dashboard", "label": "Dashboard"},
        {"path": "/qc/pending", "label": "Pending Inspections"},
    ],
    RoleName.SALES.value: [
        {"path": "/sales/dashboard", "label": "Dashboard"},
        {"path": "/sales/ready", "label": "Ready for Dispatch"},
    ],
}

_unmapped = set(RoleName.values) - set(NAVIGATION)
if _unmapped:
    raise RuntimeError(f"Roles without navigation: {sorted(_unmapped)}")


def navigation_for(role) -> List[Dict[str, str]]:
    """Unknown roles get no entries."""
    return [dict(entry) for entry in NAVIGATION.get(normalize_role(role), [])]


def home_path(role) -> str:
    entries = navigation_for(role)
    return entries[0]["path"] if entries else "/login"


def can_open_dashboard(role, dashboard: str) -> bool:
    """
    A dashboard is open to its own role. Admin may open any of them.
    """
    role = normalize_role(role)
    dashboard = normalize_role(dashboard)
    if dashboard not in NAVIGATION:
        return False
    return role == dashboard or role == RoleName.ADMIN.value
