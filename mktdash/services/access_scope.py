"""Role-based visibility rules.

admin sees everything, leader sees their own team, every other role (manager
included) sees only rows carrying their own email. Matching is exact: no case
folding or trimming happens here, the normaliser already trimmed the data.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Callable, TypeVar

from mktdash.models.db.enums import UserRole

T = TypeVar("T")

REPORT_MANAGER_ROLES = frozenset({UserRole.ADMIN.value, UserRole.LEADER.value})
ROSTER_EDITOR_ROLES = frozenset({UserRole.ADMIN.value})
ORDER_VIEWER_ROLES = frozenset({UserRole.ADMIN.value, UserRole.LEADER.value})


def role_value(role: Any) -> str:
    """Accept a UserRole or its string value."""
    return str(getattr(role, "value", role) or "")


def scope(
    records: Iterable[T],
    role: Any,
    actor_team: str | None,
    actor_email: str | None,
    team_of: Callable[[T], Any] = lambda r: getattr(r, "team", None),
    email_of: Callable[[T], Any] = lambda r: getattr(r, "person_email", None),
) -> list[T]:
    """Restrict records to what the actor may see, preserving order."""
    role_name = role_value(role)
    if role_name == UserRole.ADMIN.value:
        return list(records)
    if role_name == UserRole.LEADER.value:
        if not actor_team:
            return []
        return [r for r in records if team_of(r) == actor_team]
    if not actor_email:
        return []
    return [r for r in records if email_of(r) == actor_email]


def can_manage_reports(role: Any) -> bool:
    """Status override, field edits, deletion and manual resync of submitted reports."""
    return role_value(role) in REPORT_MANAGER_ROLES


def can_edit_roster(role: Any) -> bool:
    return role_value(role) in ROSTER_EDITOR_ROLES


def can_view_orders(role: Any) -> bool:
    return role_value(role) in ORDER_VIEWER_ROLES


__all__ = [
    "role_value",
    "scope",
    "can_manage_reports",
    "can_edit_roster",
    "can_view_orders",
]
