from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.comments import add_comment, comments_for_task
from teamboard.api.deps import get_auth_context, get_hub, page_params
from teamboard.core.auth import AuthContext
from teamboard.core.time import utcnow
from teamboard.db.pagination import PageParams, paginate
from teamboard.db.session import get_session
from teamboard.models.projects import Priority, Project
from teamboard.models.tasks import Task, TaskStatus
from teamboard.models.users import User
from teamboard.realtime.hub import RealtimeHub
from teamboard.schemas.comments import CommentBody, CommentCreate, CommentRead
from teamboard.schemas.common import ApiResponse, OkResponse, Page, ok
from teamboard.schemas.tasks import TaskAssign, TaskCreate, TaskDetail, TaskRead, TaskStatusUpdate, TaskUpdate
from teamboard.schemas.users import UserSummary
from teamboard.services import access
from teamboard.services import tasks as task_service
from teamboard.services.search import like_pattern, matches
from teamboard.services.tasks import comment_counts, task_columns, to_task_read

router = APIRouter(prefix="/tasks", tags=["tasks"])


async def _to_task_detail(session: AsyncSession, task: Task) -> TaskDetail:
    detail = TaskDetail.model_validate(to_task_read(task).model_dump())
    if task.assigned_to is not None:
        assignee = await session.get(User, task.assigned_to)
        if assignee is not None:
            detail.assignee = UserSummary.model_validate(assignee, from_attributes=True)
    creator = await session.get(User, task.created_by)
    if creator is not None:
        detail.creator = UserSummary.model_validate(creator, from_attributes=True)
    project = await session.get(Project, task.project_id)
    detail.project_name = project.name if project is not None else None
    detail.comment_count = (await comment_counts(session, [task.id])).get(task.id, 0)
    return detail


async def _visible_task(session: AsyncSession, task_id: int, auth: AuthContext) -> Task:
    task = await access.get_task_or_404(session, task_id)
    await access.ensure_task_visible(session, auth, task)
    return task


@router.get("", response_model=ApiResponse[Page[TaskRead]])
async def list_tasks(
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    priority: Priority | None = Query(default=None),
    project_id: int | None = Query(default=None, ge=1),
    assigned_to: int | None = Query(default=None, ge=1),
    search: str | None = Query(default=None, max_length=100),
    overdue: bool | None = Query(default=None),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[Page[TaskRead]]:
    statement = select(Task)
    scope = access.visible_tasks_clause(auth, await access.member_project_ids(session, auth.user_id))
    if scope is not None:
        statement = statement.where(scope)
    if status_filter is not None:
        statement = statement.where(col(Task.status) == status_filter.value)
    if priority is not None:
        statement = statement.where(col(Task.priority) == priority.value)
    if project_id is not None:
        statement = statement.where(col(Task.project_id) == project_id)
    if assigned_to is not None:
        statement = statement.where(col(Task.assigned_to) == assigned_to)
    if search:
        statement = statement.where(matches(like_pattern(search.strip()), (Task.title, Task.description)))
    if overdue is not None:
        is_overdue = (col(Task.due_date) < utcnow()) & (col(Task.status) != TaskStatus.DONE.value)
        statement = statement.where(is_overdue if overdue else ~is_overdue | col(Task.due_date).is_(None))
    page = await paginate(
        session,
        statement,
        params,
        sort_columns=task_columns(),
        transformer=lambda rows: [to_task_read(row) for row in rows],
    )
    return ok(page)


@router.get("/my", response_model=ApiResponse[list[TaskRead]])
async def my_tasks(
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[list[TaskRead]]:
    statement = select(Task).where(col(Task.assigned_to) == auth.user_id)
    if status_filter is not None:
        statement = statement.where(col(Task.status) == status_filter.value)
    # Nulls last: tasks without a due date go to the end.
    statement = statement.order_by(
        col(Task.due_date).is_(None),
        col(Task.due_date).asc(),
        col(Task.id).asc(),
    )
    return ok([to_task_read(task) for task in await session.exec(statement)])


@router.get("/project/{project_id}", response_model=ApiResponse[list[TaskRead]])
async def tasks_by_project(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[list[TaskRead]]:
    project = await access.get_project_or_404(session, project_id)
    await access.ensure_project_visible(session, auth, project)
    statement = (
        select(Task)
        .where(col(Task.project_id) == project.id)
        .order_by(col(Task.created_at).desc(), col(Task.id).desc())
    )
    return ok([to_task_read(task) for task in await session.exec(statement)])


@router.get("/{task_id}", response_model=ApiResponse[TaskDetail])
async def get_task(
    task_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[TaskDetail]:
    task = await _visible_task(session, task_id, auth)
    return ok(await _to_task_detail(session, task))


@router.post("", response_model=ApiResponse[TaskDetail], status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[TaskDetail]:
    task = await task_service.create_task(session, hub, auth, payload, request=request)
    return ok(await _to_task_detail(session, task), "Task created successfully")


@router.put("/{task_id}", response_model=ApiResponse[TaskDetail])
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[TaskDetail]:
    task = await access.get_task_or_404(session, task_id)
    task = await task_service.update_task(session, hub, auth, task, payload, request=request)
    return ok(await _to_task_detail(session, task), "Task updated successfully")


@router.put("/{task_id}/status", response_model=ApiResponse[TaskDetail])
async def update_task_status(
    task_id: int,
    payload: TaskStatusUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[TaskDetail]:
    task = await access.get_task_or_404(session, task_id)
    task = await task_service.change_status(session, hub, auth, task, payload.status, request=request)
    return ok(await _to_task_detail(session, task), "Task status updated successfully")


@router.put("/{task_id}/assign", response_model=ApiResponse[TaskDetail])
async def assign_task(
    task_id: int,
    payload: TaskAssign,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[TaskDetail]:
    task = await access.get_task_or_404(session, task_id)
    task = await task_service.assign_task(session, hub, auth, task, payload.assigned_to, request=request)
    return ok(await _to_task_detail(session, task), "Task assigned successfully")


@router.delete("/{task_id}", response_model=OkResponse)
async def delete_task(
    task_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> OkResponse:
    task = await access.get_task_or_404(session, task_id)
    await task_service.delete_task(session, auth, task, request=request)
    return OkResponse(message="Task deleted successfully")


@router.get("/{task_id}/comments", response_model=ApiResponse[list[CommentRead]])
async def list_task_comments(
    task_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[list[CommentRead]]:
    task = await _visible_task(session, task_id, auth)
    return ok(await comments_for_task(session, task.id))


@router.post(
    "/{task_id}/comments",
    response_model=ApiResponse[CommentRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_task_comment(
    task_id: int,
    payload: CommentBody,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[CommentRead]:
    comment = await add_comment(
        session,
        hub,
        auth,
        CommentCreate(task_id=task_id, content=payload.content),
        request=request,
    )
    return ok(comment, "Comment added successfully")
