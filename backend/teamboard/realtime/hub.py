"""In-process fan-out of real-time events.

The hub owns connection, room, presence and typing state for one process. All
mutation happens on the event loop, so plain sets and dicts are enough; running
several processes would need a shared broker.
"""

from __future__ import annotations

import asyncio
import itertools
from collections import defaultdict
from typing import Any, Protocol

from fastapi.encoders import jsonable_encoder

from teamboard.core.logging import get_logger
from teamboard.core.roles import Role
from teamboard.realtime import events
from teamboard.realtime.typing_registry import TypingRegistry

logger = get_logger(__name__)

_connection_ids = itertools.count(1)


class Transport(Protocol):
    async def send_json(self, data: Any) -> None: ...


class Connection:
    def __init__(self, transport: Transport, *, user_id: int, role: Role, name: str | None = None) -> None:
        self.id = next(_connection_ids)
        self.transport = transport
        self.user_id = user_id
        self.role = role
        self.name = name
        self.rooms: set[str] = set()

    def __repr__(self) -> str:
        return f"Connection(id={self.id}, user_id={self.user_id})"

    async def send(self, event: str, data: Any) -> None:
        await self.transport.send_json(jsonable_encoder(events.frame(event, data)))


class RealtimeHub:
    def __init__(self, *, typing_ttl_seconds: float = 10.0) -> None:
        self._by_user: dict[int, set[Connection]] = defaultdict(set)
        self._rooms: dict[str, set[Connection]] = defaultdict(set)
        self.typing = TypingRegistry(typing_ttl_seconds)

    # Presence

    def online_user_ids(self) -> list[int]:
        return sorted(user_id for user_id, conns in self._by_user.items() if conns)

    def is_online(self, user_id: int) -> bool:
        return bool(self._by_user.get(user_id))

    async def connect(self, conn: Connection) -> None:
        first = not self.is_online(conn.user_id)
        self._by_user[conn.user_id].add(conn)
        logger.info("realtime.connected user_id=%s conn=%s", conn.user_id, conn.id)
        if first:
            await self.broadcast(
                events.USER_ONLINE,
                {"user_id": conn.user_id, "name": conn.name},
                exclude_user=conn.user_id,
            )
        await self._send(conn, events.ONLINE_USERS, {"user_ids": self.online_user_ids()})

    async def disconnect(self, conn: Connection) -> None:
        if not self._forget(conn):
            return
        logger.info("realtime.disconnected user_id=%s conn=%s", conn.user_id, conn.id)
        await self._finish_if_offline(conn.user_id)

    async def _finish_if_offline(self, user_id: int) -> None:
        """Clear a user's typing state and announce them offline once their last connection is gone."""
        if self.is_online(user_id):
            return
        for entry in self.typing.drop_user(user_id):
            await self.emit_to_room(entry.room, events.TYPING_STOP, entry.as_payload())
        await self.broadcast(events.USER_OFFLINE, {"user_id": user_id})

    def _forget(self, conn: Connection) -> bool:
        conns = self._by_user.get(conn.user_id)
        if not conns or conn not in conns:
            return False
        conns.discard(conn)
        if not conns:
            del self._by_user[conn.user_id]
        for room in list(conn.rooms):
            self._leave_room(conn, room)
        return True

    # Rooms

    def _leave_room(self, conn: Connection, room: str) -> None:
        conn.rooms.discard(room)
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(conn)
        if not members:
            del self._rooms[room]

    def room_members(self, room: str) -> set[int]:
        return {conn.user_id for conn in self._rooms.get(room, ())}

    def join(self, conn: Connection, project_id: int) -> str:
        room = events.project_room(project_id)
        self._rooms[room].add(conn)
        conn.rooms.add(room)
        logger.debug("realtime.joined user_id=%s room=%s", conn.user_id, room)
        return room

    async def leave(self, conn: Connection, project_id: int) -> str:
        room = events.project_room(project_id)
        self._leave_room(conn, room)
        if conn.user_id not in self.room_members(room):
            entry = self.typing.stop(conn.user_id, room)
            if entry is not None:
                await self.emit_to_room(room, events.TYPING_STOP, entry.as_payload())
        return room

    # Typing

    async def start_typing(
        self,
        conn: Connection,
        room: str,
        *,
        context: str | None = None,
        context_id: Any = None,
    ) -> bool:
        if room not in conn.rooms:
            return False
        if not self.typing.start(conn.user_id, room, context, context_id):
            return False
        payload = {
            "user_id": conn.user_id,
            "name": conn.name,
            "room": room,
            "context": context,
            "context_id": context_id,
        }
        await self.emit_to_room(room, events.TYPING_START, payload, exclude_user=conn.user_id)
        return True

    async def stop_typing(self, conn: Connection, room: str) -> bool:
        entry = self.typing.stop(conn.user_id, room)
        if entry is None:
            return False
        await self.emit_to_room(room, events.TYPING_STOP, entry.as_payload(), exclude_user=conn.user_id)
        return True

    def active_typers(self, room: str) -> list[dict[str, Any]]:
        return [entry.as_payload() for entry in self.typing.active(room)]

    async def prune_expired(self) -> int:
        expired = self.typing.expire()
        for entry in expired:
            logger.debug("realtime.typing_expired user_id=%s room=%s", entry.user_id, entry.room)
            await self.emit_to_room(entry.room, events.TYPING_STOP, entry.as_payload())
        return len(expired)

    async def run_typing_sweeper(self, interval_seconds: float) -> None:
        """Expire stale typing entries until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            await self.prune_expired()

    # Delivery

    async def _send(self, conn: Connection, event: str, data: Any) -> bool:
        try:
            await conn.send(event, data)
        except Exception:
            logger.warning("realtime.send_failed user_id=%s conn=%s event=%s", conn.user_id, conn.id, event)
            # The socket loop's later disconnect() is a no-op once the connection is forgotten.
            if self._forget(conn):
                await self._finish_if_offline(conn.user_id)
            return False
        return True

    async def _deliver(self, targets: list[Connection], event: str, data: Any) -> int:
        delivered = 0
        for conn in targets:
            if await self._send(conn, event, data):
                delivered += 1
        return delivered

    async def send_to(self, conn: Connection, event: str, data: Any) -> bool:
        return await self._send(conn, event, data)

    async def emit_to_user(self, user_id: int, event: str, data: Any) -> int:
        return await self._deliver(list(self._by_user.get(user_id, ())), event, data)

    async def emit_to_room(
        self,
        room: str,
        event: str,
        data: Any,
        *,
        exclude_user: int | None = None,
    ) -> int:
        targets = [conn for conn in self._rooms.get(room, ()) if conn.user_id != exclude_user]
        return await self._deliver(targets, event, data)

    async def emit_to_project(self, project_id: int, event: str, data: Any) -> int:
        return await self.emit_to_room(events.project_room(project_id), event, data)

    async def broadcast(self, event: str, data: Any, *, exclude_user: int | None = None) -> int:
        targets = [
            conn
            for user_id, conns in self._by_user.items()
            if user_id != exclude_user
            for conn in conns
        ]
        return await self._deliver(targets, event, data)
