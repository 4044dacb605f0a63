from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.deps import get_auth_context, get_hub, page_params, require_privileged
from teamboard.core.auth import AuthContext
from teamboard.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from teamboard.core.logging import get_logger
from teamboard.core.roles import ADMIN_ONLY, ProjectRole, is_owner_or_privileged
from teamboard.core.time import utcnow
from teamboard.db import crud
from teamboard.db.pagination import PageParams, paginate
from teamboard.db.session import get_session
from teamboard.models.projects import Priority, Project, ProjectMember, ProjectStatus
from teamboard.models.tasks import Task, TaskStatus
from teamboard.realtime import events
from teamboard.realtime.hub import RealtimeHub
from teamboard.schemas.common import ApiResponse, OkResponse, Page, ok
from teamboard.schemas.projects import (
    ProjectCreate,
    ProjectDetail,
    ProjectMemberCreate,
    ProjectMemberRead,
    ProjectMemberRoleUpdate,
    ProjectRead,
    ProjectUpdate,
)
from teamboard.schemas.tasks import TaskRead
from teamboard.services import access
from teamboard.services.activity_log import changed_values, record_activity
from teamboard.services.notifications import send_notification
from teamboard.services.projects import (
    check_date_order,
    delete_project_cascade,
    list_members,
    project_columns,
    project_detail,
    to_project_read,
)
from teamboard.services.search import like_pattern, matches
from teamboard.services.tasks import task_columns, to_task_read

logger = get_logger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


async def _announce(hub: RealtimeHub, project_id: int, action: str, auth: AuthContext, **extra: object) -> None:
    await hub.emit_to_project(
        project_id,
        events.PROJECT_UPDATED,
        {"project_id": project_id, "action": action, "updated_by": auth.user_id, **extra},
    )


async def _manageable_project(session: AsyncSession, project_id: int, auth: AuthContext) -> Project:
    project = await access.get_project_or_404(session, project_id)
    access.ensure_project_manageable(auth, project)
    return project


async def _visible_project(session: AsyncSession, project_id: int, auth: AuthContext) -> Project:
    project = await access.get_project_or_404(session, project_id)
    await access.ensure_project_visible(session, auth, project)
    return project


@router.get("", response_model=ApiResponse[Page[ProjectRead]])
async def list_projects(
    status_filter: ProjectStatus | None = Query(default=None, alias="status"),
    priority: Priority | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[Page[ProjectRead]]:
    statement = select(Project)
    scope = access.visible_projects_clause(auth, await access.member_project_ids(session, auth.user_id))
    if scope is not None:
        statement = statement.where(scope)
    if status_filter is not None:
        statement = statement.where(col(Project.status) == status_filter.value)
    if priority is not None:
        statement = statement.where(col(Project.priority) == priority.value)
    if search:
        statement = statement.where(matches(like_pattern(search.strip()), (Project.name, Project.description)))
    page = await paginate(
        session,
        statement,
        params,
        sort_columns=project_columns(),
        transformer=lambda rows: [to_project_read(row) for row in rows],
    )
    return ok(page)


@router.get("/my", response_model=ApiResponse[list[ProjectRead]])
async def my_projects(
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[list[ProjectRead]]:
    project_ids = await access.member_project_ids(session, auth.user_id)
    statement = (
        select(Project)
        .where(or_(col(Project.id).in_(project_ids), col(Project.created_by) == auth.user_id))
        .order_by(col(Project.updated_at).desc())
    )
    return ok([to_project_read(project) for project in await session.exec(statement)])


@router.get("/{project_id}", response_model=ApiResponse[ProjectDetail])
async def get_project(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[ProjectDetail]:
    project = await _visible_project(session, project_id, auth)
    return ok(await project_detail(session, project))


@router.post("", response_model=ApiResponse[ProjectRead], status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(require_privileged),
) -> ApiResponse[ProjectRead]:
    data = payload.model_dump()
    data["name"] = data["name"].strip()
    project = Project(**data, created_by=auth.user_id)
    await crud.save(session, project, commit=False)
    session.add(ProjectMember(project_id=project.id, user_id=auth.user_id, role=ProjectRole.MANAGER.value))
    record_activity(
        session,
        actor_id=auth.user_id,
        action="created",
        entity_type="project",
        entity_id=project.id,
        new_values=project.model_dump(exclude={"created_at", "updated_at"}),
        request=request,
    )
    await crud.commit_or_conflict(session)
    await session.refresh(project)
    logger.info("project.created id=%s by=%s", project.id, auth.user_id)
    return ok(to_project_read(project), "Project created successfully")


@router.put("/{project_id}", response_model=ApiResponse[ProjectRead])
async def update_project(
    project_id: int,
    payload: ProjectUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[ProjectRead]:
    project = await _manageable_project(session, project_id, auth)
    updates = payload.model_dump(exclude_unset=True)
    for key in ("name", "status", "priority"):
        if key in updates and updates[key] is None:
            updates.pop(key)
    if not updates:
        raise ValidationError("No valid fields to update")
    check_date_order(updates.get("start_date", project.start_date), updates.get("end_date", project.end_date))

    old_values, new_values = changed_values(project.model_dump(), updates)
    for key, value in updates.items():
        setattr(project, key, value)
    project.updated_at = utcnow()
    record_activity(
        session,
        actor_id=auth.user_id,
        action="updated",
        entity_type="project",
        entity_id=project.id,
        old_values=old_values,
        new_values=new_values,
        request=request,
    )
    await crud.save(session, project)
    await _announce(hub, project.id, "updated", auth, changes=new_values)
    return ok(to_project_read(project), "Project updated successfully")


@router.delete("/{project_id}", response_model=OkResponse)
async def delete_project(
    project_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> OkResponse:
    project = await access.get_project_or_404(session, project_id)
    if not is_owner_or_privileged(
        user_id=auth.user_id,
        role=auth.role,
        owner_id=project.created_by,
        privileged=ADMIN_ONLY,
    ):
        raise AuthorizationError("Only the project owner or an admin can delete this project")

    record_activity(
        session,
        actor_id=auth.user_id,
        action="deleted",
        entity_type="project",
        entity_id=project.id,
        old_values=project.model_dump(exclude={"created_at", "updated_at"}),
        request=request,
    )
    await delete_project_cascade(session, project)
    await session.commit()
    logger.info("project.deleted id=%s by=%s", project_id, auth.user_id)
    await _announce(hub, project_id, "deleted", auth)
    return OkResponse(message="Project deleted successfully")


@router.get("/{project_id}/members", response_model=ApiResponse[list[ProjectMemberRead]])
async def get_members(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[list[ProjectMemberRead]]:
    project = await _visible_project(session, project_id, auth)
    return ok(await list_members(session, project.id))


@router.get("/{project_id}/tasks", response_model=ApiResponse[Page[TaskRead]])
async def get_project_tasks(
    project_id: int,
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[Page[TaskRead]]:
    project = await _visible_project(session, project_id, auth)
    statement = select(Task).where(col(Task.project_id) == project.id)
    if status_filter is not None:
        statement = statement.where(col(Task.status) == status_filter.value)
    page = await paginate(
        session,
        statement,
        params,
        sort_columns=task_columns(),
        transformer=lambda rows: [to_task_read(row) for row in rows],
    )
    return ok(page)


@router.post(
    "/{project_id}/members",
    response_model=ApiResponse[ProjectMemberRead],
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    project_id: int,
    payload: ProjectMemberCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[ProjectMemberRead]:
    project = await _manageable_project(session, project_id, auth)
    user = await access.get_user_or_404(session, payload.user_id)
    if not user.is_active:
        raise ValidationError.for_field("user_id", "Cannot add an inactive user to a project")
    if await access.is_project_member(session, project.id, user.id):
        raise ConflictError("User is already a member of this project")

    member = ProjectMember(project_id=project.id, user_id=user.id, role=payload.role.value)
    await crud.save(session, member, commit=False)
    record_activity(
        session,
        actor_id=auth.user_id,
        action="member_added",
        entity_type="project",
        entity_id=project.id,
        new_values={"user_id": user.id, "role": member.role},
        request=request,
    )
    await crud.commit_or_conflict(session, "User is already a member of this project")
    await session.refresh(member)

    await send_notification(
        session,
        hub,
        user_id=user.id,
        title="Added to project",
        message=f'You have been added to project "{project.name}" as {member.role}',
        related_entity_type="project",
        related_entity_id=project.id,
    )
    await _announce(hub, project.id, "member_added", auth, user_id=user.id, role=member.role)
    members = {item.user_id: item for item in await list_members(session, project.id)}
    return ok(members[user.id], "Member added successfully")


@router.delete("/{project_id}/members/{user_id}", response_model=OkResponse)
async def remove_member(
    project_id: int,
    user_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> OkResponse:
    project = await _manageable_project(session, project_id, auth)
    if user_id == project.created_by:
        raise ValidationError.for_field("user_id", "The project owner cannot be removed")
    member = await access.get_membership(session, project.id, user_id)
    if member is None:
        raise NotFoundError("User is not a member of this project")

    record_activity(
        session,
        actor_id=auth.user_id,
        action="member_removed",
        entity_type="project",
        entity_id=project.id,
        old_values={"user_id": user_id, "role": member.role},
        request=request,
    )
    await crud.delete(session, member)
    await _announce(hub, project.id, "member_removed", auth, user_id=user_id)
    return OkResponse(message="Member removed successfully")


@router.put("/{project_id}/members/{user_id}/role", response_model=ApiResponse[ProjectMemberRead])
async def update_member_role(
    project_id: int,
    user_id: int,
    payload: ProjectMemberRoleUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[ProjectMemberRead]:
    project = await _manageable_project(session, project_id, auth)
    member = await access.get_membership(session, project.id, user_id)
    if member is None:
        raise NotFoundError("User is not a member of this project")

    previous = member.role
    member.role = payload.role.value
    record_activity(
        session,
        actor_id=auth.user_id,
        action="member_role_changed",
        entity_type="project",
        entity_id=project.id,
        old_values={"user_id": user_id, "role": previous},
        new_values={"user_id": user_id, "role": member.role},
        request=request,
    )
    await crud.save(session, member)
    await _announce(hub, project.id, "member_role_changed", auth, user_id=user_id, role=member.role)
    members = {item.user_id: item for item in await list_members(session, project.id)}
    return ok(members[user_id], "Member role updated successfully")
