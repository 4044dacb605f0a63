from __future__ import annotations

from dataclasses import dataclass

from teamboard.core.roles import PRIVILEGED_ROLES, Role
from teamboard.core.security import TokenClaims


@dataclass(frozen=True, slots=True)
class AuthContext:
    """The authenticated caller, derived from validated token claims."""

    user_id: int
    role: Role
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> AuthContext:
        return cls(user_id=claims.user_id, role=claims.role, email=claims.email)
