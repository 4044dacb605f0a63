"""WebSocket endpoint for the real-time channel.

Frames in both directions are JSON objects ``{"event": <name>, "data": {...}}``.
The bearer token travels in the ``token`` query parameter because browsers
cannot set headers on a WebSocket handshake.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from teamboard.api.deps import authenticate_token
from teamboard.core.auth import AuthContext
from teamboard.core.errors import ApiError, AuthenticationError
from teamboard.core.logging import get_logger
from teamboard.models.users import User
from teamboard.realtime import events
from teamboard.realtime.hub import Connection, RealtimeHub
from teamboard.schemas.tasks import TaskStatusUpdate
from teamboard.services import access
from teamboard.services.tasks import change_status

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])

UNAUTHORIZED_CLOSE_CODE = 4001


class _ClientError(Exception):
    pass


def _int_field(data: dict[str, Any], name: str) -> int:
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise _ClientError(f"{name} is required")
    try:
        return int(value)
    except ValueError as exc:
        raise _ClientError(f"{name} must be an integer") from exc


def _room_field(data: dict[str, Any]) -> str:
    room = data.get("room")
    if isinstance(room, str) and room:
        return room
    if data.get("project_id") is not None:
        return events.project_room(_int_field(data, "project_id"))
    raise _ClientError("room is required")


class SocketSession:
    """Handles the client events of one authenticated connection."""

    def __init__(self, websocket: WebSocket, hub: RealtimeHub, conn: Connection, auth: AuthContext) -> None:
        self.websocket = websocket
        self.hub = hub
        self.conn = conn
        self.auth = auth

    @property
    def _session_maker(self):
        return self.websocket.app.state.session_maker

    async def dispatch(self, event: str, data: dict[str, Any]) -> None:
        handlers = {
            events.JOIN_PROJECT: self.join_project,
            events.LEAVE_PROJECT: self.leave_project,
            events.TYPING_START: self.typing_start,
            events.TYPING_STOP: self.typing_stop,
            events.TASK_STATUS_UPDATE: self.task_status_update,
        }
        handler = handlers.get(event)
        if handler is None:
            raise _ClientError(f"Unknown event: {event}")
        await handler(data)

    async def join_project(self, data: dict[str, Any]) -> None:
        project_id = _int_field(data, "project_id")
        async with self._session_maker() as session:
            project = await access.get_project_or_404(session, project_id)
            await access.ensure_project_visible(session, self.auth, project)
        room = self.hub.join(self.conn, project_id)
        await self.hub.send_to(
            self.conn,
            events.JOINED_PROJECT,
            {
                "project_id": project_id,
                "room": room,
                "online_user_ids": sorted(self.hub.room_members(room)),
                "typing": self.hub.active_typers(room),
            },
        )

    async def leave_project(self, data: dict[str, Any]) -> None:
        project_id = _int_field(data, "project_id")
        room = await self.hub.leave(self.conn, project_id)
        await self.hub.send_to(self.conn, events.LEFT_PROJECT, {"project_id": project_id, "room": room})

    async def typing_start(self, data: dict[str, Any]) -> None:
        room = _room_field(data)
        if room not in self.conn.rooms:
            raise _ClientError("Join the project before typing in it")
        await self.hub.start_typing(
            self.conn,
            room,
            context=data.get("context"),
            context_id=data.get("context_id"),
        )

    async def typing_stop(self, data: dict[str, Any]) -> None:
        await self.hub.stop_typing(self.conn, _room_field(data))

    async def task_status_update(self, data: dict[str, Any]) -> None:
        task_id = _int_field(data, "task_id")
        try:
            payload = TaskStatusUpdate.model_validate({"status": data.get("status")})
        except PydanticValidationError as exc:
            raise _ClientError("status is invalid") from exc
        async with self._session_maker() as session:
            task = await access.get_task_or_404(session, task_id)
            await change_status(session, self.hub, self.auth, task, payload.status)

    async def send_error(self, message: str, event: str | None = None) -> None:
        await self.hub.send_to(self.conn, events.ERROR, {"message": message, "event": event})


async def _authenticate(websocket: WebSocket, token: str) -> tuple[AuthContext, User] | None:
    try:
        auth = authenticate_token(websocket.app.state.tokens, token)
    except AuthenticationError as exc:
        logger.info("realtime.rejected reason=%s", exc.detail)
        return None
    async with websocket.app.state.session_maker() as session:
        user = await session.get(User, auth.user_id)
    if user is None or not user.is_active:
        logger.info("realtime.rejected reason=inactive user_id=%s", auth.user_id)
        return None
    return auth, user


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str = Query("")) -> None:
    identity = await _authenticate(websocket, token)
    if identity is None:
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason="Unauthorized")
        return
    auth, user = identity

    await websocket.accept()
    hub: RealtimeHub = websocket.app.state.hub
    conn = Connection(websocket, user_id=auth.user_id, role=auth.role, name=user.full_name)
    client = SocketSession(websocket, hub, conn, auth)
    await hub.connect(conn)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await client.send_error("Malformed frame")
                continue
            if not isinstance(message, dict) or not isinstance(message.get("event"), str):
                await client.send_error("Frames must be objects with an event name")
                continue
            event = message["event"]
            data = message.get("data")
            try:
                await client.dispatch(event, data if isinstance(data, dict) else {})
            except _ClientError as exc:
                await client.send_error(str(exc), event)
            except ApiError as exc:
                await client.send_error(str(exc.detail), event)
    except WebSocketDisconnect:
        logger.info("realtime.client_disconnected user_id=%s", auth.user_id)
    finally:
        await hub.disconnect(conn)
