"""Who hears about task activity, what they are told, and delivery of it.

Notifications are persisted first and then pushed to the recipient's open
real-time connections. A recipient who is offline reads them later.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.core.logging import get_logger
from teamboard.core.roles import ProjectRole
from teamboard.models.notifications import Notification, NotificationType
from teamboard.models.projects import Project, ProjectMember
from teamboard.models.tasks import Task, TaskComment
from teamboard.models.users import User
from teamboard.realtime import events
from teamboard.realtime.hub import RealtimeHub
from teamboard.schemas.notifications import NotificationRead

logger = get_logger(__name__)

_SNIPPET_LIMIT = 180


@dataclass(frozen=True)
class NotifyContext:
    event: str  # task.created | task.assigned | comment.created | status.changed
    actor_id: int
    task: Task
    comment: TaskComment | None = None
    previous_status: str | None = None


async def project_manager_ids(session: AsyncSession, project_id: int) -> set[int]:
    statement = select(ProjectMember.user_id).where(
        ProjectMember.project_id == project_id,
        ProjectMember.role == ProjectRole.MANAGER.value,
    )
    manager_ids = set(await session.exec(statement))
    project = await session.get(Project, project_id)
    if project is not None:
        manager_ids.add(project.created_by)
    return manager_ids


async def resolve_recipients(session: AsyncSession, ctx: NotifyContext) -> set[int]:
    task = ctx.task
    recipients: set[int] = set()

    if ctx.event in {"task.created", "task.assigned"}:
        if task.assigned_to:
            recipients.add(task.assigned_to)
        if ctx.event == "task.created":
            recipients |= await project_manager_ids(session, task.project_id)

    elif ctx.event == "comment.created":
        if task.assigned_to:
            recipients.add(task.assigned_to)
        recipients.add(task.created_by)
        recipients |= await project_manager_ids(session, task.project_id)
        if ctx.comment is not None:
            recipients.discard(ctx.comment.user_id)

    elif ctx.event == "status.changed":
        recipients.add(task.created_by)
        recipients |= await project_manager_ids(session, task.project_id)

    recipients.discard(ctx.actor_id)
    return recipients


def build_message(ctx: NotifyContext) -> tuple[str, str, NotificationType]:
    """Return (title, message, type) for a notification about ``ctx``."""
    task = ctx.task
    label = f'"{task.title}"'

    if ctx.event == "task.assigned":
        return "Task assigned", f"You have been assigned to task {label}", NotificationType.INFO

    if ctx.event == "comment.created":
        snippet = ""
        if ctx.comment is not None and ctx.comment.content:
            snippet = ctx.comment.content.strip().replace("\n", " ")
            if len(snippet) > _SNIPPET_LIMIT:
                snippet = snippet[: _SNIPPET_LIMIT - 3] + "..."
            snippet = f": {snippet}"
        return "New comment", f"New comment on task {label}{snippet}", NotificationType.INFO

    if ctx.event == "status.changed":
        kind = NotificationType.SUCCESS if task.status == "done" else NotificationType.INFO
        return "Task status changed", f"Task {label} moved to {task.status}", kind

    if ctx.event == "task.created":
        return "New task", f"New task created: {label}", NotificationType.INFO

    return "Task updated", f"Task {label} was updated", NotificationType.INFO


def to_notification_read(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(notification, from_attributes=True)


async def _active_user_ids(session: AsyncSession, user_ids: Iterable[int]) -> list[int]:
    ids = sorted(set(user_ids))
    if not ids:
        return []
    statement = select(User.id).where(col(User.id).in_(ids), col(User.is_active).is_(True))
    return sorted(await session.exec(statement))


async def push(hub: RealtimeHub | None, notifications: Iterable[Notification]) -> None:
    if hub is None:
        return
    for notification in notifications:
        await hub.emit_to_user(
            notification.user_id,
            events.NOTIFICATION,
            to_notification_read(notification).model_dump(mode="json"),
        )


async def send_notification(
    session: AsyncSession,
    hub: RealtimeHub | None,
    *,
    user_id: int,
    title: str,
    message: str,
    type: NotificationType = NotificationType.INFO,
    related_entity_type: str | None = None,
    related_entity_id: int | None = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type.value,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
    )
    session.add(notification)
    await session.commit()
    await session.refresh(notification)
    await push(hub, [notification])
    return notification


async def notify(session: AsyncSession, hub: RealtimeHub | None, ctx: NotifyContext) -> list[Notification]:
    recipient_ids = await _active_user_ids(session, await resolve_recipients(session, ctx))
    if not recipient_ids:
        return []

    title, message, kind = build_message(ctx)
    related_type, related_id = ("comment", ctx.comment.id) if ctx.comment is not None else ("task", ctx.task.id)
    created = [
        Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=kind.value,
            related_entity_type=related_type,
            related_entity_id=related_id,
        )
        for user_id in recipient_ids
    ]
    session.add_all(created)
    await session.commit()
    for notification in created:
        await session.refresh(notification)

    logger.info(
        "notify.sent event=%s task_id=%s recipients=%s",
        ctx.event,
        ctx.task.id,
        len(created),
    )
    await push(hub, created)
    return created
