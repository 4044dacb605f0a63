from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from teamboard.core.time import utcnow


class TimeEntry(SQLModel, table=True):
    __tablename__ = "time_entries"

    id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    description: str | None = None
    hours_spent: float
    start_time: datetime | None = Field(default=None, sa_type=DateTime())
    end_time: datetime | None = Field(default=None, sa_type=DateTime())
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime())
