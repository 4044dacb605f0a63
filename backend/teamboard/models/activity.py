from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from teamboard.core.time import utcnow


class EntityType(StrEnum):
    USER = "user"
    PROJECT = "project"
    TASK = "task"
    COMMENT = "comment"
    TIME_ENTRY = "time_entry"


class ActivityLog(SQLModel, table=True):
    """Append-only audit record; rows are never updated or deleted."""

    __tablename__ = "activity_logs"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int | None = Field(default=None, foreign_key="users.id", index=True)
    action: str = Field(index=True)
    entity_type: str = Field(index=True)
    entity_id: int = Field(index=True)
    old_values: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    new_values: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime())
