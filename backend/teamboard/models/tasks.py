from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from teamboard.core.time import utcnow
from teamboard.models.projects import Priority


class TaskStatus(StrEnum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    DONE = "done"


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    description: str | None = None
    status: str = Field(default=TaskStatus.TODO.value, index=True)
    priority: str = Field(default=Priority.MEDIUM.value, index=True)

    project_id: int = Field(foreign_key="projects.id", index=True)
    assigned_to: int | None = Field(default=None, foreign_key="users.id", index=True)
    created_by: int = Field(foreign_key="users.id", index=True)

    due_date: datetime | None = Field(default=None, index=True, sa_type=DateTime())
    estimated_hours: float | None = None
    actual_hours: float | None = None
    completed_at: datetime | None = Field(default=None, sa_type=DateTime())

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    def is_overdue_at(self, now: datetime) -> bool:
        return self.due_date is not None and self.due_date < now and self.status != TaskStatus.DONE


class TaskComment(SQLModel, table=True):
    __tablename__ = "task_comments"

    id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    content: str
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())
