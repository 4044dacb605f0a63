from __future__ import annotations

from sqlmodel import Field, SQLModel


class GenerateRequest(SQLModel):
    prompt: str = Field(min_length=1, max_length=4000)


class GenerateResult(SQLModel):
    text: str


class UserStoriesRequest(SQLModel):
    count: int = Field(default=5, ge=1, le=20)
    focus: str | None = Field(default=None, max_length=500)
