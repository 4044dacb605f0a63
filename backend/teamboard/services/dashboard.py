"""Read-only aggregates; every call recomputes from the tables."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.core.auth import AuthContext
from teamboard.core.roles import Role
from teamboard.core.time import utcnow
from teamboard.db.pagination import DateRange
from teamboard.models.projects import Priority, Project, ProjectMember, ProjectStatus
from teamboard.models.tasks import Task, TaskStatus
from teamboard.models.time_entries import TimeEntry
from teamboard.models.users import User
from teamboard.schemas.dashboard import (
    DashboardOverview,
    ProjectCounts,
    ProjectDashboard,
    TaskCounts,
    UserCounts,
    UserDashboard,
)
from teamboard.services import access

_HIGH_PRIORITIES = (Priority.HIGH.value, Priority.CRITICAL.value)


def _in_range(column: Any, date_range: DateRange | None) -> list[Any]:
    if date_range is None:
        return []
    clauses = []
    if date_range.start is not None:
        clauses.append(column >= date_range.start)
    if date_range.end is not None:
        clauses.append(column <= date_range.end)
    return clauses


async def _scalar(session: AsyncSession, statement: Any) -> int:
    return int((await session.exec(statement)).one() or 0)


async def task_counts(session: AsyncSession, filters: list[Any]) -> TaskCounts:
    by_status = {status.value: 0 for status in TaskStatus}
    statement = select(Task.status, func.count()).where(*filters).group_by(Task.status)
    for status, count in await session.exec(statement):
        by_status[status] = int(count)
    total = sum(by_status.values())

    overdue = await _scalar(
        session,
        select(func.count()).select_from(Task).where(
            *filters,
            col(Task.due_date) < utcnow(),
            col(Task.status) != TaskStatus.DONE.value,
        ),
    )
    high_priority = await _scalar(
        session,
        select(func.count()).select_from(Task).where(*filters, col(Task.priority).in_(_HIGH_PRIORITIES)),
    )
    completed = by_status[TaskStatus.DONE.value]
    return TaskCounts(
        total=total,
        completed=completed,
        overdue=overdue,
        high_priority=high_priority,
        by_status=by_status,
        completion_rate=round(completed / total * 100, 2) if total else 0.0,
    )


async def project_counts(session: AsyncSession, filters: list[Any]) -> ProjectCounts:
    by_status = {status.value: 0 for status in ProjectStatus}
    statement = select(Project.status, func.count()).where(*filters).group_by(Project.status)
    for status, count in await session.exec(statement):
        by_status[status] = int(count)
    return ProjectCounts(
        total=sum(by_status.values()),
        active=by_status[ProjectStatus.ACTIVE.value],
        completed=by_status[ProjectStatus.COMPLETED.value],
        by_status=by_status,
    )


async def logged_hours(session: AsyncSession, filters: list[Any]) -> float:
    statement = select(func.coalesce(func.sum(TimeEntry.hours_spent), 0.0)).where(*filters)
    return round(float((await session.exec(statement)).one()), 2)


async def overview(session: AsyncSession, auth: AuthContext, date_range: DateRange | None = None) -> DashboardOverview:
    project_filters = _in_range(col(Project.created_at), date_range)
    task_filters = _in_range(col(Task.created_at), date_range)
    hour_filters = _in_range(col(TimeEntry.created_at), date_range)

    if auth.role == Role.DEVELOPER:
        project_ids = await access.member_project_ids(session, auth.user_id)
        project_filters.append(access.visible_projects_clause(auth, project_ids))
        task_filters.append(access.visible_tasks_clause(auth, project_ids))
        hour_filters.append(col(TimeEntry.user_id) == auth.user_id)
        users = UserCounts(total=1, active=1)
    else:
        users = UserCounts(
            total=await _scalar(session, select(func.count()).select_from(User)),
            active=await _scalar(
                session,
                select(func.count()).select_from(User).where(col(User.is_active).is_(True)),
            ),
        )

    return DashboardOverview(
        projects=await project_counts(session, project_filters),
        tasks=await task_counts(session, task_filters),
        users=users,
        logged_hours=await logged_hours(session, hour_filters),
    )


async def project_overview(session: AsyncSession, project: Project) -> ProjectDashboard:
    member_count = await _scalar(
        session,
        select(func.count()).select_from(ProjectMember).where(col(ProjectMember.project_id) == project.id),
    )
    task_ids = select(Task.id).where(col(Task.project_id) == project.id)
    return ProjectDashboard(
        project_id=project.id,
        project_name=project.name,
        tasks=await task_counts(session, [col(Task.project_id) == project.id]),
        member_count=member_count,
        logged_hours=await logged_hours(session, [col(TimeEntry.task_id).in_(task_ids)]),
    )


async def user_overview(session: AsyncSession, user_id: int) -> UserDashboard:
    project_count = await _scalar(
        session,
        select(func.count()).select_from(ProjectMember).where(col(ProjectMember.user_id) == user_id),
    )
    return UserDashboard(
        user_id=user_id,
        assigned_tasks=await task_counts(session, [col(Task.assigned_to) == user_id]),
        project_count=project_count,
        logged_hours=await logged_hours(session, [col(TimeEntry.user_id) == user_id]),
    )
