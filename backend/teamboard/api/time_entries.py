from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.deps import get_auth_context, page_params
from teamboard.core.auth import AuthContext
from teamboard.core.errors import AuthorizationError, NotFoundError
from teamboard.core.roles import ADMIN_ONLY, is_owner_or_privileged
from teamboard.core.time import as_naive_utc
from teamboard.db import crud
from teamboard.db.pagination import PageParams, paginate
from teamboard.db.session import get_session
from teamboard.models.time_entries import TimeEntry
from teamboard.schemas.common import ApiResponse, OkResponse, Page, ok
from teamboard.schemas.time_entries import TimeEntryCreate, TimeEntryRead
from teamboard.services import access
from teamboard.services.activity_log import record_activity

router = APIRouter(prefix="/time-entries", tags=["time-entries"])

TIME_ENTRY_SORT_COLUMNS = {
    "id": TimeEntry.id,
    "created_at": TimeEntry.created_at,
    "hours_spent": TimeEntry.hours_spent,
    "start_time": TimeEntry.start_time,
}


def _to_read(entry: TimeEntry) -> TimeEntryRead:
    return TimeEntryRead.model_validate(entry, from_attributes=True)


@router.post("", response_model=ApiResponse[TimeEntryRead], status_code=status.HTTP_201_CREATED)
async def log_time(
    payload: TimeEntryCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[TimeEntryRead]:
    task = await access.get_task_or_404(session, payload.task_id)
    await access.ensure_task_visible(session, auth, task)

    data = payload.model_dump()
    for key in ("start_time", "end_time"):
        if data[key] is not None:
            data[key] = as_naive_utc(data[key])
    entry = TimeEntry(**data, user_id=auth.user_id)
    await crud.save(session, entry, commit=False)
    record_activity(
        session,
        actor_id=auth.user_id,
        action="time_logged",
        entity_type="time_entry",
        entity_id=entry.id,
        new_values={"task_id": task.id, "hours_spent": entry.hours_spent},
        request=request,
    )
    await crud.commit_or_conflict(session)
    await session.refresh(entry)
    return ok(_to_read(entry), "Time logged successfully")


@router.get("", response_model=ApiResponse[Page[TimeEntryRead]])
async def list_time_entries(
    user_id: int | None = Query(default=None, ge=1),
    task_id: int | None = Query(default=None, ge=1),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[Page[TimeEntryRead]]:
    owner_id = auth.user_id
    if user_id is not None and user_id != auth.user_id:
        if not auth.is_privileged:
            raise AuthorizationError("You can only view your own time entries")
        owner_id = user_id
    statement = select(TimeEntry).where(col(TimeEntry.user_id) == owner_id)
    if task_id is not None:
        statement = statement.where(col(TimeEntry.task_id) == task_id)
    page = await paginate(
        session,
        statement,
        params,
        sort_columns=TIME_ENTRY_SORT_COLUMNS,
        transformer=lambda rows: [_to_read(row) for row in rows],
    )
    return ok(page)


@router.delete("/{entry_id}", response_model=OkResponse)
async def delete_time_entry(
    entry_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> OkResponse:
    entry = await crud.get_by_id(session, TimeEntry, entry_id)
    if entry is None:
        raise NotFoundError("Time entry not found")
    if not is_owner_or_privileged(user_id=auth.user_id, role=auth.role, owner_id=entry.user_id, privileged=ADMIN_ONLY):
        raise AuthorizationError("Only the owner or an admin can delete this time entry")
    record_activity(
        session,
        actor_id=auth.user_id,
        action="deleted",
        entity_type="time_entry",
        entity_id=entry.id,
        old_values={"task_id": entry.task_id, "hours_spent": entry.hours_spent},
        request=request,
    )
    await crud.delete(session, entry)
    return OkResponse(message="Time entry deleted successfully")
