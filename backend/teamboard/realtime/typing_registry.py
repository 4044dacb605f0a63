"""Ephemeral "is typing" state, one entry per (user, room)."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class TypingEntry:
    user_id: int
    room: str
    context: str | None
    context_id: Any
    touched_at: float

    def as_payload(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "room": self.room,
            "context": self.context,
            "context_id": self.context_id,
        }


class TypingRegistry:
    """Tracks who is typing where.

    Entries older than ``ttl_seconds`` are returned by :meth:`expire`; a TTL of
    zero keeps entries until they are stopped explicitly.
    """

    def __init__(self, ttl_seconds: float = 10.0, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[int, str], TypingEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def start(self, user_id: int, room: str, context: str | None = None, context_id: Any = None) -> bool:
        """Record typing; return True when observers should be told about it."""
        key = (user_id, room)
        now = self._clock()
        existing = self._entries.get(key)
        if existing is not None:
            existing.touched_at = now
            if existing.context == context and existing.context_id == context_id:
                return False
            existing.context = context
            existing.context_id = context_id
            return True
        self._entries[key] = TypingEntry(user_id, room, context, context_id, now)
        return True

    def stop(self, user_id: int, room: str) -> TypingEntry | None:
        return self._entries.pop((user_id, room), None)

    def drop_user(self, user_id: int) -> list[TypingEntry]:
        keys = [key for key in self._entries if key[0] == user_id]
        return [self._entries.pop(key) for key in keys]

    def active(self, room: str) -> list[TypingEntry]:
        return sorted(
            (entry for entry in self._entries.values() if entry.room == room),
            key=lambda entry: entry.user_id,
        )

    def expire(self) -> list[TypingEntry]:
        if self.ttl_seconds <= 0:
            return []
        cutoff = self._clock() - self.ttl_seconds
        stale = [key for key, entry in self._entries.items() if entry.touched_at <= cutoff]
        return [self._entries.pop(key) for key in stale]
