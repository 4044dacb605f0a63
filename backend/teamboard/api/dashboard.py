from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.deps import date_range_params, get_auth_context
from teamboard.core.auth import AuthContext
from teamboard.db.pagination import DateRange
from teamboard.db.session import get_session
from teamboard.schemas.common import ApiResponse, ok
from teamboard.schemas.dashboard import DashboardOverview, ProjectDashboard, UserDashboard
from teamboard.services import access
from teamboard.services import dashboard as dashboard_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=ApiResponse[DashboardOverview])
async def overview(
    date_range: DateRange = Depends(date_range_params),
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[DashboardOverview]:
    return ok(await dashboard_service.overview(session, auth, date_range))


@router.get("/project/{project_id}", response_model=ApiResponse[ProjectDashboard])
async def project_overview(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[ProjectDashboard]:
    project = await access.get_project_or_404(session, project_id)
    await access.ensure_project_visible(session, auth, project)
    return ok(await dashboard_service.project_overview(session, project))


@router.get("/user", response_model=ApiResponse[UserDashboard])
async def user_overview(
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
) -> ApiResponse[UserDashboard]:
    return ok(await dashboard_service.user_overview(session, auth.user_id))
