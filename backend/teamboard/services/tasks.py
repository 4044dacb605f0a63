"""Task mutations shared by the HTTP routes and the real-time channel."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import Request
from sqlalchemy import delete, func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.core.auth import AuthContext
from teamboard.core.errors import AuthorizationError, ValidationError
from teamboard.core.logging import get_logger
from teamboard.core.roles import Role, is_owner_or_privileged
from teamboard.core.time import as_naive_utc, utcnow
from teamboard.db import crud
from teamboard.models.tasks import Task, TaskComment, TaskStatus
from teamboard.models.time_entries import TimeEntry
from teamboard.models.users import User
from teamboard.realtime import events
from teamboard.realtime.hub import RealtimeHub
from teamboard.schemas.tasks import TaskCreate, TaskRead, TaskUpdate
from teamboard.services import access
from teamboard.services.activity_log import changed_values, record_activity
from teamboard.services.notifications import NotifyContext, notify

logger = get_logger(__name__)

TASK_SORT_FIELDS = ("id", "title", "status", "priority", "due_date", "created_at", "updated_at")
_REQUIRED_FIELDS = ("title", "status", "priority")


def task_columns() -> dict[str, Any]:
    return {name: getattr(Task, name) for name in TASK_SORT_FIELDS}


def to_task_read(task: Task, *, now: datetime | None = None) -> TaskRead:
    read = TaskRead.model_validate(task, from_attributes=True)
    read.is_overdue = task.is_overdue_at(now or utcnow())
    return read


def _snapshot(task: Task) -> dict[str, Any]:
    return task.model_dump(exclude={"created_at", "updated_at"})


def _sync_completion(task: Task) -> None:
    if task.status == TaskStatus.DONE:
        if task.completed_at is None:
            task.completed_at = utcnow()
    else:
        task.completed_at = None


async def ensure_assignable(session: AsyncSession, project_id: int, user_id: int) -> User:
    user = await crud.get_by_id(session, User, user_id)
    if user is None or not user.is_active:
        raise ValidationError.for_field("assigned_to", "Assigned user not found or inactive")
    if not await access.is_project_member(session, project_id, user_id):
        raise ValidationError.for_field("assigned_to", "Assigned user is not a member of this project")
    return user


async def _announce_assignment(hub: RealtimeHub | None, task: Task, actor_id: int) -> None:
    if hub is None:
        return
    await hub.emit_to_project(
        task.project_id,
        events.TASK_ASSIGNED,
        {
            "task_id": task.id,
            "project_id": task.project_id,
            "assigned_to": task.assigned_to,
            "assigned_by": actor_id,
            "task": to_task_read(task).model_dump(mode="json"),
        },
    )


async def _announce_status(hub: RealtimeHub | None, task: Task, previous: str, actor_id: int) -> None:
    if hub is None:
        return
    await hub.emit_to_project(
        task.project_id,
        events.TASK_STATUS_UPDATED,
        {
            "task_id": task.id,
            "project_id": task.project_id,
            "status": task.status,
            "previous_status": previous,
            "updated_by": actor_id,
        },
    )


async def create_task(
    session: AsyncSession,
    hub: RealtimeHub | None,
    auth: AuthContext,
    payload: TaskCreate,
    *,
    request: Request | None = None,
) -> Task:
    project = await access.get_project_or_404(session, payload.project_id)
    if auth.role == Role.DEVELOPER and not await access.is_project_member(session, project.id, auth.user_id):
        raise AuthorizationError("Access denied to this project")
    if payload.assigned_to is not None:
        await ensure_assignable(session, project.id, payload.assigned_to)

    data = payload.model_dump()
    if data.get("due_date") is not None:
        data["due_date"] = as_naive_utc(data["due_date"])
    task = Task(**data, created_by=auth.user_id)
    _sync_completion(task)
    await crud.save(session, task, commit=False)
    record_activity(
        session,
        actor_id=auth.user_id,
        action="created",
        entity_type="task",
        entity_id=task.id,
        new_values=_snapshot(task),
        request=request,
    )
    await crud.commit_or_conflict(session)
    await session.refresh(task)
    logger.info("task.created id=%s project_id=%s", task.id, task.project_id)

    await notify(session, hub, NotifyContext(event="task.created", actor_id=auth.user_id, task=task))
    if task.assigned_to is not None:
        await _announce_assignment(hub, task, auth.user_id)
    return task


async def update_task(
    session: AsyncSession,
    hub: RealtimeHub | None,
    auth: AuthContext,
    task: Task,
    payload: TaskUpdate,
    *,
    request: Request | None = None,
) -> Task:
    await access.ensure_task_visible(session, auth, task)
    updates = payload.model_dump(exclude_unset=True)
    for key in _REQUIRED_FIELDS:
        if key in updates and updates[key] is None:
            updates.pop(key)
    if updates.get("due_date") is not None:
        updates["due_date"] = as_naive_utc(updates["due_date"])
    if "assigned_to" in updates and updates["assigned_to"] is not None:
        await ensure_assignable(session, task.project_id, updates["assigned_to"])
    if not updates:
        raise ValidationError("No valid fields to update")

    before = _snapshot(task)
    old_values, new_values = changed_values(before, updates)
    for key, value in updates.items():
        setattr(task, key, value)
    _sync_completion(task)
    task.updated_at = utcnow()
    record_activity(
        session,
        actor_id=auth.user_id,
        action="updated",
        entity_type="task",
        entity_id=task.id,
        old_values=old_values,
        new_values=new_values,
        request=request,
    )
    await crud.commit_or_conflict(session)
    await session.refresh(task)

    if "status" in new_values:
        await notify(
            session,
            hub,
            NotifyContext(event="status.changed", actor_id=auth.user_id, task=task, previous_status=before["status"]),
        )
        await _announce_status(hub, task, before["status"], auth.user_id)
    if "assigned_to" in new_values and task.assigned_to is not None:
        await notify(session, hub, NotifyContext(event="task.assigned", actor_id=auth.user_id, task=task))
        await _announce_assignment(hub, task, auth.user_id)
    return task


async def change_status(
    session: AsyncSession,
    hub: RealtimeHub | None,
    auth: AuthContext,
    task: Task,
    status: TaskStatus,
    *,
    request: Request | None = None,
) -> Task:
    return await update_task(session, hub, auth, task, TaskUpdate(status=status), request=request)


async def assign_task(
    session: AsyncSession,
    hub: RealtimeHub | None,
    auth: AuthContext,
    task: Task,
    assignee_id: int | None,
    *,
    request: Request | None = None,
) -> Task:
    return await update_task(session, hub, auth, task, TaskUpdate(assigned_to=assignee_id), request=request)


async def delete_task(
    session: AsyncSession,
    auth: AuthContext,
    task: Task,
    *,
    request: Request | None = None,
) -> None:
    await access.ensure_task_visible(session, auth, task)
    if not is_owner_or_privileged(user_id=auth.user_id, role=auth.role, owner_id=task.created_by):
        raise AuthorizationError("Only the task creator or a manager can delete this task")

    record_activity(
        session,
        actor_id=auth.user_id,
        action="deleted",
        entity_type="task",
        entity_id=task.id,
        old_values=_snapshot(task),
        request=request,
    )
    await session.execute(delete(TimeEntry).where(col(TimeEntry.task_id) == task.id))
    await session.execute(delete(TaskComment).where(col(TaskComment.task_id) == task.id))
    await session.delete(task)
    await session.commit()
    logger.info("task.deleted id=%s by=%s", task.id, auth.user_id)


async def comment_counts(session: AsyncSession, task_ids: list[int]) -> dict[int, int]:
    if not task_ids:
        return {}
    statement = (
        select(TaskComment.task_id, func.count())
        .where(col(TaskComment.task_id).in_(task_ids))
        .group_by(TaskComment.task_id)
    )
    return {task_id: int(count) for task_id, count in await session.exec(statement)}
