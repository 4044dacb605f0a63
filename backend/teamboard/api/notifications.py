from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, update
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.deps import get_auth_context, get_hub, page_params, require_privileged
from teamboard.core.auth import AuthContext
from teamboard.core.errors import NotFoundError
from teamboard.core.time import utcnow
from teamboard.db import crud
from teamboard.db.pagination import PageParams, paginate
from teamboard.db.session import get_session
from teamboard.models.notifications import Notification, NotificationType
from teamboard.realtime.hub import RealtimeHub
from teamboard.schemas.common import ApiResponse, OkResponse, Page, ok
from teamboard.schemas.notifications import MarkAllReadResult, NotificationCreate, NotificationRead, UnreadCount
from teamboard.services.access import get_user_or_404
from teamboard.services.notifications import send_notification, to_notification_read

router = APIRouter(prefix="/notifications", tags=["notifications"])

NOTIFICATION_SORT_COLUMNS = {
    "id": Notification.id,
    "created_at": Notification.created_at,
    "is_read": Notification.is_read,
    "type": Notification.type,
}


async def _own_notification(session: AsyncSession, notification_id: int, auth: AuthContext) -> Notification:
    notification = await crud.get_by_id(session, Notification, notification_id)
    # Another user's notification is reported as missing.
    if notification is None or notification.user_id != auth.user_id:
        raise NotFoundError("Notification not found")
    return notification


@router.get("", response_model=ApiResponse[Page[NotificationRead]])
async def list_notifications(
    is_read: bool | None = Query(default=None),
    type_filter: NotificationType | None = Query(default=None, alias="type"),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[Page[NotificationRead]]:
    statement = select(Notification).where(col(Notification.user_id) == auth.user_id)
    if is_read is not None:
        statement = statement.where(col(Notification.is_read).is_(is_read))
    if type_filter is not None:
        statement = statement.where(col(Notification.type) == type_filter.value)
    page = await paginate(
        session,
        statement,
        params,
        sort_columns=NOTIFICATION_SORT_COLUMNS,
        transformer=lambda rows: [to_notification_read(row) for row in rows],
    )
    return ok(page)


@router.get("/unread-count", response_model=ApiResponse[UnreadCount])
async def unread_count(
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[UnreadCount]:
    statement = select(func.count()).select_from(Notification).where(
        col(Notification.user_id) == auth.user_id,
        col(Notification.is_read).is_(False),
    )
    return ok(UnreadCount(count=int((await session.exec(statement)).one())))


@router.patch("/mark-all-read", response_model=ApiResponse[MarkAllReadResult])
async def mark_all_read(
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[MarkAllReadResult]:
    result = await session.execute(
        update(Notification)
        .where(col(Notification.user_id) == auth.user_id, col(Notification.is_read).is_(False))
        .values(is_read=True, read_at=utcnow())
    )
    await session.commit()
    return ok(MarkAllReadResult(updated=result.rowcount or 0), "All notifications marked as read")


@router.post("", response_model=ApiResponse[NotificationRead], status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationCreate,
    session: AsyncSession = Depends(get_session),
    _auth: AuthContext = Depends(require_privileged),
    hub: RealtimeHub = Depends(get_hub),
) -> ApiResponse[NotificationRead]:
    recipient = await get_user_or_404(session, payload.user_id)
    notification = await send_notification(
        session,
        hub,
        user_id=recipient.id,
        title=payload.title,
        message=payload.message,
        type=payload.type,
        related_entity_type=payload.related_entity_type,
        related_entity_id=payload.related_entity_id,
    )
    return ok(to_notification_read(notification), "Notification sent")


@router.get("/{notification_id}", response_model=ApiResponse[NotificationRead])
async def get_notification(
    notification_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[NotificationRead]:
    notification = await _own_notification(session, notification_id, auth)
    return ok(to_notification_read(notification))


@router.patch("/{notification_id}/read", response_model=ApiResponse[NotificationRead])
async def mark_read(
    notification_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[NotificationRead]:
    notification = await _own_notification(session, notification_id, auth)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        await crud.save(session, notification)
    return ok(to_notification_read(notification), "Notification marked as read")


@router.delete("/{notification_id}", response_model=OkResponse)
async def delete_notification(
    notification_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> OkResponse:
    notification = await _own_notification(session, notification_id, auth)
    await crud.delete(session, notification)
    return OkResponse(message="Notification deleted successfully")
