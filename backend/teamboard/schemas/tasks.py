from __future__ import annotations

from datetime import datetime

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from teamboard.models.projects import Priority
from teamboard.models.tasks import TaskStatus
from teamboard.schemas.users import UserSummary

# Older clients send the short form.
STATUS_ALIASES = {"review": TaskStatus.IN_REVIEW.value}


def normalize_status(value: object) -> object:
    if isinstance(value, str):
        return STATUS_ALIASES.get(value, value)
    return value


class TaskCreate(SQLModel):
    title: str = Field(min_length=2, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    project_id: int
    assigned_to: int | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    due_date: datetime | None = None
    estimated_hours: float | None = Field(default=None, ge=0)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        return normalize_status(value)


class TaskUpdate(SQLModel):
    title: str | None = Field(default=None, min_length=2, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    assigned_to: int | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    due_date: datetime | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        return normalize_status(value)


class TaskStatusUpdate(SQLModel):
    status: TaskStatus

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        return normalize_status(value)


class TaskAssign(SQLModel):
    assigned_to: int | None = None


class TaskRead(SQLModel):
    id: int
    title: str
    description: str | None = None
    status: TaskStatus
    priority: Priority
    project_id: int
    assigned_to: int | None = None
    created_by: int
    due_date: datetime | None = None
    estimated_hours: float | None = None
    actual_hours: float | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    is_overdue: bool = False


class TaskDetail(TaskRead):
    assignee: UserSummary | None = None
    creator: UserSummary | None = None
    project_name: str | None = None
    comment_count: int = 0
