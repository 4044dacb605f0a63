from __future__ import annotations

from sqlmodel import Field, SQLModel


class ProjectCounts(SQLModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)


class TaskCounts(SQLModel):
    total: int = 0
    completed: int = 0
    overdue: int = 0
    high_priority: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    completion_rate: float = 0.0


class UserCounts(SQLModel):
    total: int = 0
    active: int = 0


class DashboardOverview(SQLModel):
    projects: ProjectCounts
    tasks: TaskCounts
    users: UserCounts
    logged_hours: float = 0.0


class ProjectDashboard(SQLModel):
    project_id: int
    project_name: str
    tasks: TaskCounts
    member_count: int = 0
    logged_hours: float = 0.0


class UserDashboard(SQLModel):
    user_id: int
    assigned_tasks: TaskCounts
    project_count: int = 0
    logged_hours: float = 0.0
