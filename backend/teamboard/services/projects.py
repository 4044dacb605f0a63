from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import delete, func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.core.errors import ValidationError
from teamboard.core.time import utcnow
from teamboard.models.projects import Project, ProjectMember
from teamboard.models.tasks import Task, TaskComment, TaskStatus
from teamboard.models.time_entries import TimeEntry
from teamboard.models.users import User
from teamboard.schemas.projects import (
    DATE_ORDER_MESSAGE,
    ProjectDetail,
    ProjectMemberRead,
    ProjectRead,
    ProjectTaskStats,
)
from teamboard.schemas.users import UserSummary

_STATUS_VALUES = frozenset(status.value for status in TaskStatus)

PROJECT_SORT_FIELDS = ("id", "name", "status", "priority", "start_date", "end_date", "created_at", "updated_at")


def project_columns() -> dict[str, Any]:
    return {name: getattr(Project, name) for name in PROJECT_SORT_FIELDS}


def to_project_read(project: Project) -> ProjectRead:
    return ProjectRead.model_validate(project, from_attributes=True)


def check_date_order(start: date | None, end: date | None) -> None:
    if start is not None and end is not None and end <= start:
        raise ValidationError.for_field("end_date", DATE_ORDER_MESSAGE)


async def task_stats(session: AsyncSession, project_id: int) -> ProjectTaskStats:
    statement = (
        select(Task.status, func.count())
        .where(col(Task.project_id) == project_id)
        .group_by(Task.status)
    )
    stats = ProjectTaskStats()
    for status, count in await session.exec(statement):
        if status in _STATUS_VALUES:
            setattr(stats, status, int(count))
        stats.total += int(count)
    overdue = select(func.count()).select_from(Task).where(
        col(Task.project_id) == project_id,
        col(Task.due_date) < utcnow(),
        col(Task.status) != TaskStatus.DONE.value,
    )
    stats.overdue = int((await session.exec(overdue)).one())
    return stats


async def list_members(session: AsyncSession, project_id: int) -> list[ProjectMemberRead]:
    statement = (
        select(ProjectMember, User)
        .join(User, col(User.id) == col(ProjectMember.user_id))
        .where(col(ProjectMember.project_id) == project_id)
        .order_by(col(ProjectMember.joined_at).asc(), col(ProjectMember.id).asc())
    )
    members: list[ProjectMemberRead] = []
    for member, user in await session.exec(statement):
        read = ProjectMemberRead.model_validate(member, from_attributes=True)
        read.user = UserSummary.model_validate(user, from_attributes=True)
        members.append(read)
    return members


async def project_detail(session: AsyncSession, project: Project) -> ProjectDetail:
    detail = ProjectDetail.model_validate(project, from_attributes=True)
    creator = await session.get(User, project.created_by)
    if creator is not None:
        detail.creator = UserSummary.model_validate(creator, from_attributes=True)
    detail.members = await list_members(session, project.id)
    detail.task_stats = await task_stats(session, project.id)
    return detail


async def delete_project_cascade(session: AsyncSession, project: Project) -> None:
    """Remove a project and everything hanging off it; the caller commits."""
    task_ids = list(await session.exec(select(Task.id).where(col(Task.project_id) == project.id)))
    if task_ids:
        await session.execute(delete(TimeEntry).where(col(TimeEntry.task_id).in_(task_ids)))
        await session.execute(delete(TaskComment).where(col(TaskComment.task_id).in_(task_ids)))
    await session.execute(delete(Task).where(col(Task.project_id) == project.id))
    await session.execute(delete(ProjectMember).where(col(ProjectMember.project_id) == project.id))
    await session.delete(project)
