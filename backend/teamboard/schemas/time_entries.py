from __future__ import annotations

from datetime import datetime

from pydantic import model_validator
from sqlmodel import Field, SQLModel


class TimeEntryCreate(SQLModel):
    task_id: int
    hours_spent: float = Field(gt=0, le=24)
    description: str | None = Field(default=None, max_length=1000)
    start_time: datetime | None = None
    end_time: datetime | None = None

    @model_validator(mode="after")
    def _times_in_order(self) -> TimeEntryCreate:
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class TimeEntryRead(SQLModel):
    id: int
    task_id: int
    user_id: int
    hours_spent: float
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    created_at: datetime
