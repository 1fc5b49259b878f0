from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_422_UNPROCESSABLE_ENTITY, HTTP_500_INTERNAL_SERVER_ERROR

logger = logging.getLogger(__name__)


def error_payload(
    *,
    error: str,
    type_: str,
    code: str | None = None,
    details: Any | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": error, "code": code, "type": type_}
    if details is not None:
        payload["details"] = details
    return payload


class ReelroomException(Exception):
    """Base exception for Reelroom.

    Raised from services and relay operations. HTTP handlers translate them via
    the registered exception handlers; the chat relay turns them into
    per-session error events.
    """

    status_code: int = 400
    default_code: str | None = None

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        self.message = message
        self.code = code if code is not None else self.default_code
        self.status_code = status_code if status_code is not None else self.status_code
        self.details = details
        super().__init__(message)


class ConfigurationError(ReelroomException):
    """Raised when configuration is invalid (server-side)."""

    status_code = 500
    default_code = "configuration_error"


class AuthError(ReelroomException):
    """Raised for missing, invalid or expired identity tokens."""

    status_code = 401
    default_code = "auth_error"


class ForbiddenError(ReelroomException):
    status_code = 403
    default_code = "forbidden"


class NotFoundError(ReelroomException):
    status_code = 404
    default_code = "not_found"


class ConflictError(ReelroomException):
    status_code = 409
    default_code = "conflict"


class ValidationError(ReelroomException):
    """Raised for malformed event payloads or inputs."""

    status_code = 422
    default_code = "invalid_payload"


class PersistenceError(ReelroomException):
    """Raised when the document store is unavailable or rejects a write."""

    status_code = 503
    default_code = "persistence_error"


def register_exception_handlers(app: FastAPI) -> None:
    """Register Reelroom's exception handlers on a FastAPI app."""

    @app.exception_handler(ReelroomException)
    async def _reelroom_exception_handler(
        _request: Request, exc: ReelroomException
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("%s: %s", exc.__class__.__name__, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(
                error=exc.message,
                code=exc.code,
                type_=exc.__class__.__name__,
                details=exc.details,
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_payload(
                error="Validation error",
                code="validation_error",
                type_=exc.__class__.__name__,
                details=jsonable_encoder(exc.errors()),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = getattr(exc, "detail", None)
        if isinstance(detail, str):
            error = detail
            details = None
        else:
            error = "Request failed"
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(
                error=error,
                code="http_exception",
                type_=exc.__class__.__name__,
                details=details,
            ),
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_payload(
                error="Internal server error",
                code="internal_error",
                type_="InternalServerError",
            ),
        )


__all__ = [
    "AuthError",
    "ConfigurationError",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "PersistenceError",
    "ReelroomException",
    "ValidationError",
    "error_payload",
    "register_exception_handlers",
]
