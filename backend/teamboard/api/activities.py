from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.deps import date_range_params, get_auth_context, page_params
from teamboard.core.auth import AuthContext
from teamboard.core.errors import AuthorizationError, NotFoundError
from teamboard.core.roles import Role, is_owner_or_privileged
from teamboard.db import crud
from teamboard.db.pagination import DateRange, PageParams, apply_date_range, paginate
from teamboard.db.session import get_session
from teamboard.models.activity import ActivityLog, EntityType
from teamboard.models.users import User
from teamboard.schemas.activity import ActivityRead
from teamboard.schemas.common import ApiResponse, Page, ok
from teamboard.schemas.users import UserSummary

router = APIRouter(prefix="/activities", tags=["activities"])

ACTIVITY_SORT_COLUMNS = {
    "id": ActivityLog.id,
    "created_at": ActivityLog.created_at,
    "action": ActivityLog.action,
    "entity_type": ActivityLog.entity_type,
}


async def _with_users(session: AsyncSession, rows: list[ActivityLog]) -> list[ActivityRead]:
    user_ids = {row.user_id for row in rows if row.user_id is not None}
    users: dict[int, User] = {}
    if user_ids:
        users = {user.id: user for user in await session.exec(select(User).where(col(User.id).in_(user_ids)))}
    items: list[ActivityRead] = []
    for row in rows:
        read = ActivityRead.model_validate(row, from_attributes=True)
        if row.user_id in users:
            read.user = UserSummary.model_validate(users[row.user_id], from_attributes=True)
        items.append(read)
    return items


async def _page(
    session: AsyncSession,
    statement,
    params: PageParams,
    date_range: DateRange,
) -> Page[ActivityRead]:
    statement = apply_date_range(statement, col(ActivityLog.created_at), date_range)
    page = await paginate(session, statement, params, sort_columns=ACTIVITY_SORT_COLUMNS)
    # User summaries need a second query, so they are attached after paging.
    return page.model_copy(update={"items": await _with_users(session, list(page.items))})


def _scoped(auth: AuthContext):
    statement = select(ActivityLog)
    # Developers only see their own trail.
    if auth.role == Role.DEVELOPER:
        statement = statement.where(col(ActivityLog.user_id) == auth.user_id)
    return statement


@router.get("", response_model=ApiResponse[Page[ActivityRead]])
async def list_activities(
    entity_type: EntityType | None = Query(default=None),
    entity_id: int | None = Query(default=None, ge=1),
    user_id: int | None = Query(default=None, ge=1),
    action: str | None = Query(default=None, max_length=50),
    params: PageParams = Depends(page_params),
    date_range: DateRange = Depends(date_range_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[Page[ActivityRead]]:
    statement = _scoped(auth)
    if entity_type is not None:
        statement = statement.where(col(ActivityLog.entity_type) == entity_type.value)
    if entity_id is not None:
        statement = statement.where(col(ActivityLog.entity_id) == entity_id)
    if user_id is not None:
        statement = statement.where(col(ActivityLog.user_id) == user_id)
    if action:
        statement = statement.where(col(ActivityLog.action) == action)
    return ok(await _page(session, statement, params, date_range))


@router.get("/entity/{entity_type}/{entity_id}", response_model=ApiResponse[Page[ActivityRead]])
async def entity_activities(
    entity_type: EntityType,
    entity_id: int,
    params: PageParams = Depends(page_params),
    date_range: DateRange = Depends(date_range_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[Page[ActivityRead]]:
    statement = _scoped(auth).where(
        col(ActivityLog.entity_type) == entity_type.value,
        col(ActivityLog.entity_id) == entity_id,
    )
    return ok(await _page(session, statement, params, date_range))


@router.get("/user/{user_id}", response_model=ApiResponse[Page[ActivityRead]])
async def user_activities(
    user_id: int,
    params: PageParams = Depends(page_params),
    date_range: DateRange = Depends(date_range_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[Page[ActivityRead]]:
    if not is_owner_or_privileged(user_id=auth.user_id, role=auth.role, owner_id=user_id):
        raise AuthorizationError("You can only view your own activity")
    statement = select(ActivityLog).where(col(ActivityLog.user_id) == user_id)
    return ok(await _page(session, statement, params, date_range))


@router.get("/{activity_id}", response_model=ApiResponse[ActivityRead])
async def get_activity(
    activity_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[ActivityRead]:
    activity = await crud.get_by_id(session, ActivityLog, activity_id)
    if activity is None or (auth.role == Role.DEVELOPER and activity.user_id != auth.user_id):
        raise NotFoundError("Activity not found")
    return ok((await _with_users(session, [activity]))[0])
