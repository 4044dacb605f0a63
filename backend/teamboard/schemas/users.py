from __future__ import annotations

import re
from datetime import datetime

from pydantic import EmailStr, field_validator
from sqlmodel import Field, SQLModel

from teamboard.core.roles import Role

_PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).+$")
PASSWORD_RULE_MESSAGE = (
    "Password must contain at least one lowercase letter, one uppercase letter, and one number"
)


def check_password_strength(value: str) -> str:
    if not _PASSWORD_RULE.match(value):
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return value


class UserRead(SQLModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    avatar_url: str | None = None
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime
    updated_at: datetime


class UserSummary(SQLModel):
    """Compact user shape embedded in other resources."""

    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    avatar_url: str | None = None


class UserCreate(SQLModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    role: Role = Role.DEVELOPER
    avatar_url: str | None = None

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return check_password_strength(value)

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return value


class UserUpdate(SQLModel):
    email: EmailStr | None = None
    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)
    avatar_url: str | None = None


class UserRoleUpdate(SQLModel):
    role: Role


class UserStats(SQLModel):
    total: int
    active: int
    inactive: int
    by_role: dict[str, int]
