"""Error taxonomy and the handlers that render it as the API envelope."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from teamboard.core.logging import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class ApiError(HTTPException):
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    message_default = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: list[dict[str, str]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            status_code=self.status_code_default,
            detail=message or self.message_default,
            headers=headers,
        )
        self.errors = errors


class ValidationError(ApiError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    message_default = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str, *, summary: str | None = None) -> ValidationError:
        return cls(summary or message, errors=[{"field": field, "message": message}])


class AuthenticationError(ApiError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    message_default = "Authentication required"


class AuthorizationError(ApiError):
    status_code_default = status.HTTP_403_FORBIDDEN
    message_default = "Insufficient permissions"


class NotFoundError(ApiError):
    status_code_default = status.HTTP_404_NOT_FOUND
    message_default = "Resource not found"


class ConflictError(ApiError):
    status_code_default = status.HTTP_409_CONFLICT
    message_default = "Resource already exists or violates constraints"


class RateLimitError(ApiError):
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS
    message_default = RATE_LIMIT_MESSAGE


class ServiceUnavailableError(ApiError):
    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE
    message_default = "Service temporarily unavailable"


def error_body(message: str, errors: list[dict[str, str]] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _field_from_loc(loc: tuple[Any, ...]) -> str:
    # ("body", "project_id") -> "project_id"; ("query", "limit") -> "limit"
    parts = [str(part) for part in loc if part not in {"body", "query", "path", "header"}]
    return ".".join(parts) or "request"


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    errors = getattr(exc, "errors", None)
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, errors),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field_from_loc(tuple(err.get("loc", ()))), "message": str(err.get("msg", "Invalid value"))}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_body("Validation failed", errors)),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled method=%s path=%s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
