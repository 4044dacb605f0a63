from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from teamboard.api.activities import router as activities_router
from teamboard.api.ai import router as ai_router
from teamboard.api.auth import router as auth_router
from teamboard.api.comments import router as comments_router
from teamboard.api.dashboard import router as dashboard_router
from teamboard.api.notifications import router as notifications_router
from teamboard.api.projects import router as projects_router
from teamboard.api.realtime import router as realtime_router
from teamboard.api.search import router as search_router
from teamboard.api.tasks import router as tasks_router
from teamboard.api.time_entries import router as time_entries_router
from teamboard.api.users import router as users_router
from teamboard.core.config import Settings, settings as default_settings
from teamboard.core.errors import RATE_LIMIT_MESSAGE, install_error_handlers
from teamboard.core.logging import configure_logging, get_logger
from teamboard.core.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from teamboard.core.security import TokenService
from teamboard.db.session import build_engine, build_session_maker, init_db
from teamboard.integrations.llm import LLMClient, LLMConfig
from teamboard.realtime.hub import RealtimeHub

logger = get_logger(__name__)

AUTH_RATE_LIMIT_MESSAGE = "Too many authentication attempts, please try again later."
AI_RATE_LIMIT_MESSAGE = "Too many AI requests, please slow down."


def build_api_router() -> APIRouter:
    api_router = APIRouter(prefix="/api")
    api_router.include_router(auth_router)
    api_router.include_router(users_router)
    api_router.include_router(projects_router)
    api_router.include_router(tasks_router)
    api_router.include_router(comments_router)
    api_router.include_router(notifications_router)
    api_router.include_router(activities_router)
    api_router.include_router(dashboard_router)
    api_router.include_router(search_router)
    api_router.include_router(time_entries_router)
    api_router.include_router(ai_router)
    return api_router


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)

    engine = build_engine(settings.database_url)
    hub = RealtimeHub(typing_ttl_seconds=settings.typing_ttl_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.db_auto_create:
            await init_db(engine)
        sweeper: asyncio.Task[None] | None = None
        if settings.typing_ttl_seconds > 0:
            sweeper = asyncio.create_task(hub.run_typing_sweeper(settings.typing_sweep_interval_seconds))
        logger.info("app.started environment=%s", settings.environment)
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper
            await engine.dispose()
            logger.info("app.stopped")

    app = FastAPI(title="Teamboard API", version="0.1.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_maker = build_session_maker(engine)
    app.state.tokens = TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_in=settings.jwt_expires_in,
    )
    app.state.hub = hub
    app.state.llm = LLMClient(LLMConfig.from_settings(settings))
    if settings.rate_limit_enabled:
        app.state.auth_limiter = FixedWindowRateLimiter(
            settings.auth_rate_limit_max,
            settings.rate_limit_window_seconds,
            AUTH_RATE_LIMIT_MESSAGE,
        )
        app.state.ai_limiter = FixedWindowRateLimiter(
            settings.ai_rate_limit_max,
            settings.ai_rate_limit_window_seconds,
            AI_RATE_LIMIT_MESSAGE,
        )
        app.add_middleware(
            RateLimitMiddleware,
            limiter=FixedWindowRateLimiter(
                settings.rate_limit_max,
                settings.rate_limit_window_seconds,
                RATE_LIMIT_MESSAGE,
            ),
        )
    else:
        app.state.auth_limiter = None
        app.state.ai_limiter = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict[str, object]:
        return {"success": True, "message": "Teamboard API", "data": {"version": app.version}}

    app.include_router(build_api_router())
    app.include_router(realtime_router)
    return app


app = create_app()
