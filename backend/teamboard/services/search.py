from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, or_
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.core.auth import AuthContext
from teamboard.core.errors import ValidationError
from teamboard.core.roles import Role
from teamboard.models.projects import Project
from teamboard.models.tasks import Task, TaskComment
from teamboard.models.users import User
from teamboard.schemas.comments import CommentRead
from teamboard.schemas.projects import ProjectRead
from teamboard.schemas.search import SEARCH_TYPES, SearchResults
from teamboard.schemas.users import UserSummary
from teamboard.services import access
from teamboard.services.tasks import to_task_read

MIN_QUERY_LENGTH = 2
MAX_QUERY_LENGTH = 100


def parse_types(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return SEARCH_TYPES
    requested = tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    unknown = [part for part in requested if part not in SEARCH_TYPES]
    if unknown:
        raise ValidationError.for_field(
            "types",
            f"Unknown search type(s): {', '.join(unknown)}. Allowed: {', '.join(SEARCH_TYPES)}",
        )
    return requested or SEARCH_TYPES


def like_pattern(query: str) -> str:
    """Wrap ``query`` for a contains-match with LIKE wildcards escaped."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def matches(pattern: str, columns: Iterable[Any]) -> Any:
    return or_(*(col(column).ilike(pattern, escape="\\") for column in columns))


async def _page(session: AsyncSession, statement: Any, *, order: Any, offset: int, limit: int) -> tuple[list[Any], int]:
    total = int((await session.exec(select(func.count()).select_from(statement.subquery()))).one())
    rows = list(await session.exec(statement.order_by(order).offset(offset).limit(limit)))
    return rows, total


async def search(
    session: AsyncSession,
    auth: AuthContext,
    query: str,
    *,
    types: tuple[str, ...] = SEARCH_TYPES,
    page: int = 1,
    limit: int = 10,
) -> SearchResults:
    query = query.strip()
    if not MIN_QUERY_LENGTH <= len(query) <= MAX_QUERY_LENGTH:
        raise ValidationError.for_field(
            "q",
            f"Search query must be between {MIN_QUERY_LENGTH} and {MAX_QUERY_LENGTH} characters",
        )
    pattern = like_pattern(query)
    offset = (page - 1) * limit
    results = SearchResults(query=query)

    project_ids: list[int] = []
    if auth.role == Role.DEVELOPER:
        project_ids = await access.member_project_ids(session, auth.user_id)

    if "projects" in types:
        statement = select(Project).where(matches(pattern, (Project.name, Project.description)))
        scope = access.visible_projects_clause(auth, project_ids)
        if scope is not None:
            statement = statement.where(scope)
        rows, results.totals["projects"] = await _page(
            session, statement, order=col(Project.updated_at).desc(), offset=offset, limit=limit
        )
        results.projects = [ProjectRead.model_validate(row, from_attributes=True) for row in rows]

    if "tasks" in types:
        statement = select(Task).where(matches(pattern, (Task.title, Task.description)))
        scope = access.visible_tasks_clause(auth, project_ids)
        if scope is not None:
            statement = statement.where(scope)
        rows, results.totals["tasks"] = await _page(
            session, statement, order=col(Task.updated_at).desc(), offset=offset, limit=limit
        )
        results.tasks = [to_task_read(row) for row in rows]

    if "users" in types:
        statement = select(User).where(
            col(User.is_active).is_(True),
            matches(pattern, (User.first_name, User.last_name, User.email)),
        )
        rows, results.totals["users"] = await _page(
            session, statement, order=col(User.first_name).asc(), offset=offset, limit=limit
        )
        results.users = [UserSummary.model_validate(row, from_attributes=True) for row in rows]

    if "comments" in types:
        statement = (
            select(TaskComment)
            .join(Task, col(Task.id) == col(TaskComment.task_id))
            .where(matches(pattern, (TaskComment.content,)))
        )
        scope = access.visible_tasks_clause(auth, project_ids)
        if scope is not None:
            statement = statement.where(scope)
        rows, results.totals["comments"] = await _page(
            session, statement, order=col(TaskComment.created_at).desc(), offset=offset, limit=limit
        )
        results.comments = [CommentRead.model_validate(row, from_attributes=True) for row in rows]

    return results
