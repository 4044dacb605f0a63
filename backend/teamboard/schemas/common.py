from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from fastapi_pagination.bases import AbstractPage, AbstractParams, RawParams
from pydantic import BaseModel
from sqlmodel import SQLModel

T = TypeVar("T")

SortOrder = Literal["asc", "desc"]


class ErrorDetail(SQLModel):
    field: str
    message: str


class ApiResponse(BaseModel, Generic[T]):
    """Envelope carried by every HTTP response."""

    success: bool = True
    data: T | None = None
    message: str | None = None
    errors: list[ErrorDetail] | None = None


class OkResponse(ApiResponse[None]):
    pass


@dataclass(frozen=True)
class PageParams(AbstractParams):
    """Page/limit paging plus the requested sort; ``page`` is 1-based."""

    page: int = 1
    limit: int = 10
    sort_by: str | None = None
    sort_order: SortOrder = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_raw_params(self) -> RawParams:
        return RawParams(limit=self.limit, offset=self.offset)


class PageMeta(SQLModel):
    total_items: int
    total_pages: int
    current_page: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, *, total: int, page: int, limit: int) -> PageMeta:
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            total_items=total,
            total_pages=total_pages,
            current_page=page,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class Page(AbstractPage[T], Generic[T]):
    """List payload: ``{items, pagination}``."""

    items: Sequence[T]
    pagination: PageMeta

    __params_type__ = PageParams

    @classmethod
    def create(
        cls,
        items: Sequence[T],
        params: AbstractParams,
        *,
        total: int | None = None,
        **kwargs: Any,
    ) -> Page[T]:
        if not isinstance(params, PageParams):
            raise TypeError(f"Page expects PageParams, got {type(params).__name__}")
        return cls(
            items=items,
            pagination=PageMeta.build(total=total or 0, page=params.page, limit=params.limit),
            **kwargs,
        )


def ok(data: T | None = None, message: str | None = None) -> ApiResponse[T]:
    return ApiResponse(success=True, data=data, message=message)
