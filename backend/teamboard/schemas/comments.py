from __future__ import annotations

from datetime import datetime

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from teamboard.schemas.users import UserSummary


class CommentBody(SQLModel):
    content: str = Field(min_length=1, max_length=2000)

    @field_validator("content", mode="before")
    @classmethod
    def _strip_content(cls, value: object) -> object:
        # Runs before the length check so blank comments are rejected.
        return value.strip() if isinstance(value, str) else value


class CommentCreate(CommentBody):
    task_id: int


class CommentUpdate(CommentBody):
    pass


class CommentRead(SQLModel):
    id: int
    task_id: int
    user_id: int
    content: str
    created_at: datetime
    updated_at: datetime
    author: UserSummary | None = None
