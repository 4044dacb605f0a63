"""Resource lookups and project-scoped visibility rules."""

from __future__ import annotations

from sqlalchemy import or_
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.core.auth import AuthContext
from teamboard.core.errors import AuthorizationError, NotFoundError
from teamboard.core.roles import Role, is_owner_or_privileged
from teamboard.db import crud
from teamboard.models.projects import Project, ProjectMember
from teamboard.models.tasks import Task, TaskComment
from teamboard.models.users import User


async def get_user_or_404(session: AsyncSession, user_id: int) -> User:
    user = await crud.get_by_id(session, User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def get_project_or_404(session: AsyncSession, project_id: int) -> Project:
    project = await crud.get_by_id(session, Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


async def get_task_or_404(session: AsyncSession, task_id: int) -> Task:
    task = await crud.get_by_id(session, Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


async def get_comment_or_404(session: AsyncSession, comment_id: int) -> TaskComment:
    comment = await crud.get_by_id(session, TaskComment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


async def get_membership(session: AsyncSession, project_id: int, user_id: int) -> ProjectMember | None:
    statement = select(ProjectMember).where(
        ProjectMember.project_id == project_id,
        ProjectMember.user_id == user_id,
    )
    return (await session.exec(statement)).first()


async def is_project_member(session: AsyncSession, project_id: int, user_id: int) -> bool:
    return await get_membership(session, project_id, user_id) is not None


async def member_project_ids(session: AsyncSession, user_id: int) -> list[int]:
    statement = select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
    return list(await session.exec(statement))


def visible_projects_clause(auth: AuthContext, project_ids: list[int]):
    """WHERE clause limiting a developer to their own projects; None means unrestricted."""
    if auth.role != Role.DEVELOPER:
        return None
    return or_(col(Project.id).in_(project_ids), Project.created_by == auth.user_id)


def visible_tasks_clause(auth: AuthContext, project_ids: list[int]):
    if auth.role != Role.DEVELOPER:
        return None
    return or_(col(Task.project_id).in_(project_ids), Task.assigned_to == auth.user_id)


async def can_view_project(session: AsyncSession, auth: AuthContext, project: Project) -> bool:
    if auth.role != Role.DEVELOPER or project.created_by == auth.user_id:
        return True
    return await is_project_member(session, project.id, auth.user_id)


async def ensure_project_visible(session: AsyncSession, auth: AuthContext, project: Project) -> None:
    if not await can_view_project(session, auth, project):
        raise AuthorizationError("You are not a member of this project")


async def ensure_task_visible(session: AsyncSession, auth: AuthContext, task: Task) -> None:
    if auth.role != Role.DEVELOPER or task.assigned_to == auth.user_id or task.created_by == auth.user_id:
        return
    if not await is_project_member(session, task.project_id, auth.user_id):
        raise AuthorizationError("You do not have access to this task")


def ensure_project_manageable(auth: AuthContext, project: Project) -> None:
    """Project mutation: its owner or an admin/manager."""
    if not is_owner_or_privileged(user_id=auth.user_id, role=auth.role, owner_id=project.created_by):
        raise AuthorizationError("Only the project owner or a manager can change this project")
