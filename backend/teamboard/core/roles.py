"""Closed role vocabularies used by the authorization gate."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class Role(StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    DEVELOPER = "developer"


class ProjectRole(StrEnum):
    """Role a user holds inside a single project (independent of their account role)."""

    MANAGER = "manager"
    DEVELOPER = "developer"
    TESTER = "tester"
    DESIGNER = "designer"


ALL_ROLES: frozenset[Role] = frozenset(Role)
PRIVILEGED_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER})
ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})


def is_role_allowed(role: Role | str | None, allowed: Iterable[Role]) -> bool:
    """Return True iff ``role`` is one of ``allowed``; unknown role strings never match."""
    if role is None:
        return False
    try:
        parsed = Role(role)
    except ValueError:
        return False
    return parsed in frozenset(allowed)


def is_owner_or_privileged(
    *,
    user_id: int,
    role: Role | str,
    owner_id: int | None,
    privileged: Iterable[Role] = PRIVILEGED_ROLES,
) -> bool:
    """Ownership-or-role check shared by every resource type."""
    if owner_id is not None and owner_id == user_id:
        return True
    return is_role_allowed(role, privileged)
