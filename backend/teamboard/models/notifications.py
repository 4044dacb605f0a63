from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from teamboard.core.time import utcnow


class NotificationType(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    title: str
    message: str
    type: str = Field(default=NotificationType.INFO.value)
    is_read: bool = Field(default=False, index=True)
    read_at: datetime | None = Field(default=None, sa_type=DateTime())

    # Optional pointer to what the notification is about, e.g. ("task", 12).
    related_entity_type: str | None = None
    related_entity_id: int | None = None

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime())
