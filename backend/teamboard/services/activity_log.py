from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.models.activity import ActivityLog


def _snapshot(values: dict[str, Any] | None) -> dict[str, Any] | None:
    if values is None:
        return None
    return jsonable_encoder(values)


def record_activity(
    session: AsyncSession,
    *,
    actor_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int,
    old_values: dict[str, Any] | None = None,
    new_values: dict[str, Any] | None = None,
    request: Request | None = None,
) -> ActivityLog:
    """Stage an activity row; the caller's commit persists it with the change itself."""
    entry = ActivityLog(
        user_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_values=_snapshot(old_values),
        new_values=_snapshot(new_values),
    )
    if request is not None:
        entry.ip_address = request.client.host if request.client else None
        entry.user_agent = request.headers.get("user-agent")
    session.add(entry)
    return entry


def changed_values(before: dict[str, Any], updates: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split an update into (old, new) dicts holding only the fields that actually change."""
    old: dict[str, Any] = {}
    new: dict[str, Any] = {}
    for key, value in updates.items():
        if before.get(key) != value:
            old[key] = before.get(key)
            new[key] = value
    return old, new
