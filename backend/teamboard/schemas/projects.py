from __future__ import annotations

from datetime import date, datetime

from pydantic import model_validator
from sqlmodel import Field, SQLModel

from teamboard.core.roles import ProjectRole
from teamboard.models.projects import Priority, ProjectStatus
from teamboard.schemas.users import UserSummary

DATE_ORDER_MESSAGE = "End date must be after start date"


def _check_dates(start: date | None, end: date | None) -> None:
    if start is not None and end is not None and end <= start:
        raise ValueError(DATE_ORDER_MESSAGE)


class ProjectCreate(SQLModel):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: Priority = Priority.MEDIUM
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def _dates_in_order(self) -> ProjectCreate:
        _check_dates(self.start_date, self.end_date)
        return self


class ProjectUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    status: ProjectStatus | None = None
    priority: Priority | None = None
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def _dates_in_order(self) -> ProjectUpdate:
        _check_dates(self.start_date, self.end_date)
        return self


class ProjectMemberRead(SQLModel):
    id: int
    project_id: int
    user_id: int
    role: ProjectRole
    joined_at: datetime
    user: UserSummary | None = None


class ProjectMemberCreate(SQLModel):
    user_id: int
    role: ProjectRole = ProjectRole.DEVELOPER


class ProjectMemberRoleUpdate(SQLModel):
    role: ProjectRole


class ProjectTaskStats(SQLModel):
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    in_review: int = 0
    done: int = 0
    overdue: int = 0


class ProjectRead(SQLModel):
    id: int
    name: str
    description: str | None = None
    status: ProjectStatus
    priority: Priority
    start_date: date | None = None
    end_date: date | None = None
    created_by: int
    created_at: datetime
    updated_at: datetime


class ProjectDetail(ProjectRead):
    creator: UserSummary | None = None
    members: list[ProjectMemberRead] = Field(default_factory=list)
    task_stats: ProjectTaskStats = Field(default_factory=ProjectTaskStats)
