from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.deps import get_auth_context, get_hub
from teamboard.core.auth import AuthContext
from teamboard.core.errors import AuthorizationError
from teamboard.core.roles import ADMIN_ONLY, is_owner_or_privileged
from teamboard.core.time import utcnow
from teamboard.db import crud
from teamboard.db.session import get_session
from teamboard.models.tasks import TaskComment
from teamboard.models.users import User
from teamboard.realtime.hub import RealtimeHub
from teamboard.schemas.comments import CommentCreate, CommentRead, CommentUpdate
from teamboard.schemas.common import ApiResponse, OkResponse, ok
from teamboard.schemas.users import UserSummary
from teamboard.services import access
from teamboard.services.activity_log import record_activity
from teamboard.services.notifications import NotifyContext, notify

router = APIRouter(prefix="/comments", tags=["comments"])


def _to_comment_read(comment: TaskComment, author: User | None) -> CommentRead:
    read = CommentRead.model_validate(comment, from_attributes=True)
    if author is not None:
        read.author = UserSummary.model_validate(author, from_attributes=True)
    return read


async def _comment_read(session: AsyncSession, comment: TaskComment) -> CommentRead:
    return _to_comment_read(comment, await session.get(User, comment.user_id))


async def comments_for_task(session: AsyncSession, task_id: int) -> list[CommentRead]:
    statement = (
        select(TaskComment, User)
        .join(User, col(User.id) == col(TaskComment.user_id))
        .where(col(TaskComment.task_id) == task_id)
        .order_by(col(TaskComment.created_at).asc(), col(TaskComment.id).asc())
    )
    return [_to_comment_read(comment, author) for comment, author in await session.exec(statement)]


async def add_comment(
    session: AsyncSession,
    hub: RealtimeHub | None,
    auth: AuthContext,
    payload: CommentCreate,
    *,
    request: Request | None = None,
) -> CommentRead:
    task = await access.get_task_or_404(session, payload.task_id)
    await access.ensure_task_visible(session, auth, task)

    comment = TaskComment(task_id=task.id, user_id=auth.user_id, content=payload.content)
    await crud.save(session, comment, commit=False)
    record_activity(
        session,
        actor_id=auth.user_id,
        action="commented",
        entity_type="comment",
        entity_id=comment.id,
        new_values={"task_id": task.id, "content": comment.content},
        request=request,
    )
    await crud.commit_or_conflict(session)
    await session.refresh(comment)
    await notify(session, hub, NotifyContext(event="comment.created", actor_id=auth.user_id, task=task, comment=comment))
    return await _comment_read(session, comment)


async def _owned_comment(session: AsyncSession, comment_id: int, auth: AuthContext) -> TaskComment:
    comment = await access.get_comment_or_404(session, comment_id)
    if not is_owner_or_privileged(
        user_id=auth.user_id,
        role=auth.role,
        owner_id=comment.user_id,
        privileged=ADMIN_ONLY,
    ):
        raise AuthorizationError("Only the comment author or an admin can change this comment")
    return comment


@router.post("", response_model=ApiResponse[CommentRead], status_code=status.HTTP_201_CREATED)
async def create_comment(
    payload: CommentCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[CommentRead]:
    comment = await add_comment(session, hub, auth, payload, request=request)
    return ok(comment, "Comment added successfully")


@router.get("/task/{task_id}", response_model=ApiResponse[list[CommentRead]])
async def list_comments(
    task_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[list[CommentRead]]:
    task = await access.get_task_or_404(session, task_id)
    await access.ensure_task_visible(session, auth, task)
    return ok(await comments_for_task(session, task.id))


@router.get("/{comment_id}", response_model=ApiResponse[CommentRead])
async def get_comment(
    comment_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[CommentRead]:
    comment = await access.get_comment_or_404(session, comment_id)
    task = await access.get_task_or_404(session, comment.task_id)
    await access.ensure_task_visible(session, auth, task)
    return ok(await _comment_read(session, comment))


@router.put("/{comment_id}", response_model=ApiResponse[CommentRead])
async def update_comment(
    comment_id: int,
    payload: CommentUpdate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[CommentRead]:
    comment = await _owned_comment(session, comment_id, auth)
    previous = comment.content
    comment.content = payload.content
    comment.updated_at = utcnow()
    record_activity(
        session,
        actor_id=auth.user_id,
        action="updated",
        entity_type="comment",
        entity_id=comment.id,
        old_values={"content": previous},
        new_values={"content": comment.content},
        request=request,
    )
    await crud.save(session, comment)
    return ok(await _comment_read(session, comment), "Comment updated successfully")


@router.delete("/{comment_id}", response_model=OkResponse)
async def delete_comment(
    comment_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> OkResponse:
    comment = await _owned_comment(session, comment_id, auth)
    record_activity(
        session,
        actor_id=auth.user_id,
        action="deleted",
        entity_type="comment",
        entity_id=comment.id,
        old_values={"task_id": comment.task_id, "content": comment.content},
        request=request,
    )
    await crud.delete(session, comment)
    return OkResponse(message="Comment deleted successfully")
