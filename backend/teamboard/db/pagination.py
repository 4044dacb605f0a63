"""List-query helpers: bounded page/limit, allow-listed sorting, date ranges.

Counting and slicing are delegated to fastapi-pagination; this module adds the
sort allow-list and the bounds checks in front of it.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from fastapi_pagination import set_page
from fastapi_pagination.ext.sqlmodel import paginate as paginate_query
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel.sql.expression import SelectOfScalar

from teamboard.core.errors import ValidationError
from teamboard.core.time import as_naive_utc
from teamboard.schemas.common import Page, PageParams

T = TypeVar("T")

DEFAULT_MAX_OFFSET = 10_000
DEFAULT_MAX_RANGE_DAYS = 730


def check_page_bounds(page: int, limit: int, *, max_offset: int = DEFAULT_MAX_OFFSET) -> None:
    """Reject deep pagination before any query runs."""
    if page * limit > max_offset:
        raise ValidationError.for_field(
            "pagination",
            f"Cannot paginate beyond {max_offset:,} records",
            summary="Pagination offset too large",
        )


@dataclass(frozen=True, slots=True)
class DateRange:
    start: datetime | None = None
    end: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None


def validate_date_range(
    start: datetime | None,
    end: datetime | None,
    *,
    max_days: int = DEFAULT_MAX_RANGE_DAYS,
) -> DateRange:
    start = as_naive_utc(start) if start is not None else None
    end = as_naive_utc(end) if end is not None else None
    if start is not None and end is not None:
        if start > end:
            raise ValidationError.for_field(
                "dateRange",
                "Invalid date range",
                summary="Start date cannot be later than end date",
            )
        span_days = math.ceil((end - start).total_seconds() / 86_400)
        if span_days > max_days:
            raise ValidationError.for_field(
                "dateRange",
                "Date range too large",
                summary=f"Date range cannot exceed {max_days} days",
            )
    return DateRange(start=start, end=end)


def apply_date_range(
    statement: SelectOfScalar[T],
    column: Any,
    date_range: DateRange,
) -> SelectOfScalar[T]:
    if date_range.start is not None:
        statement = statement.where(column >= date_range.start)
    if date_range.end is not None:
        statement = statement.where(column <= date_range.end)
    return statement


def order_clause(
    params: PageParams,
    sort_columns: Mapping[str, Any],
    default_sort: str,
) -> list[ColumnElement[Any]]:
    """Resolve ``sort_by`` against the allow-list; unknown keys fall back to the default."""
    key = params.sort_by if params.sort_by in sort_columns else default_sort
    column = sort_columns[key]
    tie_breaker = sort_columns.get("id")
    if params.sort_order == "asc":
        clauses = [column.asc()]
        if tie_breaker is not None and key != "id":
            clauses.append(tie_breaker.asc())
    else:
        clauses = [column.desc()]
        if tie_breaker is not None and key != "id":
            clauses.append(tie_breaker.desc())
    return clauses


async def paginate(
    session: AsyncSession,
    statement: SelectOfScalar[T],
    params: PageParams,
    *,
    sort_columns: Mapping[str, Any],
    default_sort: str = "created_at",
    transformer: Callable[[Sequence[T]], Sequence[Any]] | None = None,
) -> Page[Any]:
    ordered = statement.order_by(*order_clause(params, sort_columns, default_sort))
    with set_page(Page[Any]):
        return await paginate_query(session, ordered, params=params, transformer=transformer)
