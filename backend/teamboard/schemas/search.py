from __future__ import annotations

from sqlmodel import Field, SQLModel

from teamboard.schemas.comments import CommentRead
from teamboard.schemas.projects import ProjectRead
from teamboard.schemas.tasks import TaskRead
from teamboard.schemas.users import UserSummary

SEARCH_TYPES = ("projects", "tasks", "users", "comments")


class SearchResults(SQLModel):
    query: str
    projects: list[ProjectRead] = Field(default_factory=list)
    tasks: list[TaskRead] = Field(default_factory=list)
    users: list[UserSummary] = Field(default_factory=list)
    comments: list[CommentRead] = Field(default_factory=list)
    totals: dict[str, int] = Field(default_factory=dict)
