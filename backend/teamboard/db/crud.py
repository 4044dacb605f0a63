from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.core.errors import ConflictError

ModelT = TypeVar("ModelT", bound=SQLModel)


async def get_by_id(session: AsyncSession, model: type[ModelT], obj_id: Any) -> ModelT | None:
    if obj_id is None:
        return None
    return await session.get(model, obj_id)


async def commit_or_conflict(session: AsyncSession, message: str | None = None) -> None:
    """Commit, translating integrity violations into a 409."""
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError(message) from exc


async def save(session: AsyncSession, obj: ModelT, *, commit: bool = True) -> ModelT:
    session.add(obj)
    if commit:
        await commit_or_conflict(session)
        await session.refresh(obj)
    else:
        await session.flush()
    return obj


async def create(session: AsyncSession, model: type[ModelT], *, commit: bool = True, **data: Any) -> ModelT:
    return await save(session, model(**data), commit=commit)


async def delete(session: AsyncSession, obj: SQLModel, *, commit: bool = True) -> None:
    await session.delete(obj)
    if commit:
        await session.commit()
