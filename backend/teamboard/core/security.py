"""Password hashing and signed session tokens.

Passwords are hashed with bcrypt at a fixed work factor. Session tokens are
HS256 JWTs carrying ``sub`` (user id), ``role`` and ``email``; expiry is part of
the token so validation needs no shared state.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from teamboard.core.roles import Role

DEFAULT_BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of the secret.
_BCRYPT_MAX_BYTES = 72


class TokenError(Exception):
    """Base class for token validation failures."""


class TokenExpiredError(TokenError):
    pass


class TokenInvalidError(TokenError):
    """Malformed token or bad signature."""


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash at all.
        return False


@dataclass(frozen=True, slots=True)
class TokenClaims:
    user_id: int
    role: Role
    email: str | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TokenService:
    secret: str
    algorithm: str = "HS256"
    expires_in: timedelta = timedelta(days=7)

    def issue(
        self,
        claims: TokenClaims | Mapping[str, Any],
        *,
        now: datetime | None = None,
    ) -> str:
        if isinstance(claims, TokenClaims):
            user_id, role, email = claims.user_id, claims.role, claims.email
        else:
            user_id, role, email = claims["id"], claims["role"], claims.get("email")
        issued_at = now or datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "role": str(Role(role)),
            "iat": issued_at,
            "exp": issued_at + self.expires_in,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def validate(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "role"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalidError("Invalid token") from exc

        try:
            user_id = int(payload["sub"])
            role = Role(payload["role"])
        except (TypeError, ValueError) as exc:
            raise TokenInvalidError("Invalid token claims") from exc
        expires_at = datetime.fromtimestamp(int(payload["exp"]), UTC).replace(tzinfo=None)
        return TokenClaims(user_id=user_id, role=role, email=payload.get("email"), expires_at=expires_at)
