from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.deps import get_auth_context, page_params
from teamboard.core.auth import AuthContext
from teamboard.db.pagination import PageParams
from teamboard.db.session import get_session
from teamboard.schemas.common import ApiResponse, ok
from teamboard.schemas.search import SearchResults
from teamboard.services import search as search_service

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=ApiResponse[SearchResults])
async def search(
    q: str = Query(default=""),
    types: str | None = Query(default=None),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[SearchResults]:
    results = await search_service.search(
        session,
        auth,
        q,
        types=search_service.parse_types(types),
        page=params.page,
        limit=params.limit,
    )
    return ok(results)
