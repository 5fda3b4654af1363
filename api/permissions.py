"""
Role-based view scoping.

Callers identify themselves with two request headers:

    X-User-Role        Administrator | Management | User
    X-Operating-Unit   the caller's own operating unit

A role without view-all rights (User) has list, report and accomplishment
filters pinned to its own operating unit.  ``can_edit`` is reported back so
clients can disable editing; no request is refused on role grounds.  A
request without a role header is treated as unrestricted.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header

_EDIT_ROLES = {"Administrator", "User"}
_VIEW_ALL_ROLES = {"Administrator", "Management"}


def get_user_permissions(role: str | None) -> dict[str, bool]:
    """Return ``{"can_edit", "can_view_all"}`` for *role*.

    Unknown roles get neither right.
    """
    return {
        "can_edit": role in _EDIT_ROLES,
        "can_view_all": role in _VIEW_ALL_ROLES,
    }


@dataclass(frozen=True)
class Caller:
    role: str | None
    operating_unit: str | None
    can_edit: bool
    can_view_all: bool

    def scoped_unit(self, requested: str | None) -> str | None:
        """Operating unit a filter must use: the caller's own when pinned."""
        if not self.can_view_all and self.operating_unit:
            return self.operating_unit
        return requested


def get_caller(
    x_user_role: str | None = Header(None, description="Caller role"),
    x_operating_unit: str | None = Header(None, description="Caller operating unit"),
) -> Caller:
    """FastAPI dependency: the caller's role, unit and permission flags."""
    if not x_user_role:
        return Caller(role=None, operating_unit=x_operating_unit,
                      can_edit=True, can_view_all=True)
    perms = get_user_permissions(x_user_role)
    return Caller(role=x_user_role, operating_unit=x_operating_unit, **perms)
