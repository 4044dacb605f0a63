from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel

from teamboard.models.notifications import NotificationType


class NotificationCreate(SQLModel):
    user_id: int
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=1000)
    type: NotificationType = NotificationType.INFO
    related_entity_type: str | None = None
    related_entity_id: int | None = None


class NotificationRead(SQLModel):
    id: int
    user_id: int
    title: str
    message: str
    type: NotificationType
    is_read: bool
    read_at: datetime | None = None
    related_entity_type: str | None = None
    related_entity_id: int | None = None
    created_at: datetime


class UnreadCount(SQLModel):
    count: int


class MarkAllReadResult(SQLModel):
    updated: int
