from __future__ import annotations

from typing import Iterable, List, Optional

from shift_builder.settings import SCHEDULED_ROLE

# Legacy second staff tier; scheduled with the rest of staff.
ROLE_ALIASES = {"staff_two": "staff"}


def normalize_role(role: Optional[str]) -> str:
    """Lower-case and collapse whitespace so role tags compare reliably."""
    if not role:
        return ""
    token = " ".join(role.strip().lower().split())
    return ROLE_ALIASES.get(token, token)


def role_matches(employee_role: Optional[str], wanted: Optional[str]) -> bool:
    if wanted is None or wanted == "All":
        return True
    return normalize_role(employee_role) == normalize_role(wanted)


def roster_role(role: Optional[str] = None) -> str:
    return normalize_role(role or SCHEDULED_ROLE)


def filter_roster(roles: Iterable[str], wanted: Optional[str]) -> List[str]:
    return sorted({normalize_role(role) for role in roles if role_matches(role, wanted)})
