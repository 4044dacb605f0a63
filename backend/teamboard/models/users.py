from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from teamboard.core.roles import Role
from teamboard.core.time import utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    first_name: str
    last_name: str
    role: str = Field(default=Role.DEVELOPER.value, index=True)
    avatar_url: str | None = None
    is_active: bool = Field(default=True, index=True)
    last_login: datetime | None = Field(default=None, sa_type=DateTime())

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
