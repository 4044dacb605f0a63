"""Process-wide fixed-window request throttling keyed by client address.

Requests over the ceiling are rejected immediately; nothing is queued.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from teamboard.core.errors import RATE_LIMIT_MESSAGE, RateLimitError, error_body
from teamboard.core.logging import get_logger

logger = get_logger(__name__)

EXEMPT_PATHS = frozenset({"/health"})


@dataclass(slots=True)
class FixedWindowRateLimiter:
    max_requests: int
    window_seconds: float
    message: str = RATE_LIMIT_MESSAGE
    _windows: dict[str, tuple[float, int]] = field(default_factory=dict)

    def hit(self, key: str, *, now: float | None = None) -> bool:
        """Count one request for ``key``; return False once the window's ceiling is passed."""
        current = time.monotonic() if now is None else now
        started, count = self._windows.get(key, (current, 0))
        if current - started >= self.window_seconds:
            started, count = current, 0
        count += 1
        self._windows[key] = (started, count)
        if len(self._windows) > 10_000:
            self._evict(current)
        return count <= self.max_requests

    def reset(self) -> None:
        self._windows.clear()

    def _evict(self, now: float) -> None:
        stale = [key for key, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in stale:
            del self._windows[key]


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limiter: FixedWindowRateLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)
        key = client_key(request)
        if not self.limiter.hit(key):
            logger.warning("rate_limit.rejected client=%s path=%s", key, request.url.path)
            return JSONResponse(status_code=429, content=error_body(self.limiter.message))
        return await call_next(request)


def rate_limited(limiter_attr: str) -> Callable[[Request], None]:
    """Build a route dependency enforcing the limiter stored at ``app.state.<limiter_attr>``.

    A missing limiter (rate limiting disabled) lets every request through.
    """

    def _dependency(request: Request) -> None:
        limiter: FixedWindowRateLimiter | None = getattr(request.app.state, limiter_attr, None)
        if limiter is None:
            return
        if not limiter.hit(client_key(request)):
            raise RateLimitError(limiter.message)

    return _dependency
