from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Literal

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from teamboard.core.auth import AuthContext
from teamboard.core.config import Settings
from teamboard.core.errors import AuthenticationError, AuthorizationError
from teamboard.core.logging import get_logger
from teamboard.core.roles import Role, is_role_allowed
from teamboard.core.security import TokenExpiredError, TokenInvalidError, TokenService
from teamboard.db.pagination import DateRange, PageParams, check_page_bounds, validate_date_range
from teamboard.realtime.hub import RealtimeHub

logger = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)

NO_TOKEN_MESSAGE = "Access denied. No token provided."


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_hub(request: Request) -> RealtimeHub:
    return request.app.state.hub


def authenticate_token(tokens: TokenService, token: str | None) -> AuthContext:
    """Validate a raw bearer token; shared by HTTP routes and the socket handshake."""
    if not token:
        raise AuthenticationError(NO_TOKEN_MESSAGE)
    try:
        claims = tokens.validate(token)
    except TokenExpiredError as exc:
        raise AuthenticationError("Token expired") from exc
    except TokenInvalidError as exc:
        raise AuthenticationError("Invalid token") from exc
    except Exception as exc:
        logger.exception("auth.token_verification_failed")
        raise AuthenticationError("Token verification failed") from exc
    return AuthContext.from_claims(claims)


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> AuthContext:
    token = credentials.credentials if credentials is not None else None
    return authenticate_token(get_tokens(request), token)


def require_roles(*roles: Role) -> Callable[..., AuthContext]:
    """Route dependency: authenticate first, then check the caller's role."""
    allowed = frozenset(roles)

    async def _dependency(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if not is_role_allowed(auth.role, allowed):
            raise AuthorizationError()
        return auth

    return _dependency


require_privileged = require_roles(Role.ADMIN, Role.MANAGER)
require_admin = require_roles(Role.ADMIN)


def page_params(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
) -> PageParams:
    settings = get_settings(request)
    limit = min(limit, settings.max_page_size)
    check_page_bounds(page, limit, max_offset=settings.max_pagination_offset)
    return PageParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


def date_range_params(
    request: Request,
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
) -> DateRange:
    settings = get_settings(request)
    return validate_date_range(start_date, end_date, max_days=settings.max_date_range_days)
