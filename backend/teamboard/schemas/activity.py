from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlmodel import SQLModel

from teamboard.schemas.users import UserSummary


class ActivityRead(SQLModel):
    id: int
    user_id: int | None = None
    action: str
    entity_type: str
    entity_id: int
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
    user: UserSummary | None = None
