"""Exception handlers rendering every failure as one JSON error shape.

Bodies look like ``{"error", "message", "path"}`` plus ``field`` for business
errors tied to an input and ``details`` for request validation failures.
"""

from typing import Any

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from scheduling.core.exceptions import AppException, DatabaseException

logger = structlog.get_logger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: Any,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    content = {"error": error, "message": message, "path": request.url.path, **extra}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render scheduling errors.

    Business errors name the offending field so clients can point at it.
    Store failures were already logged with their cause and keep the generic
    message.
    """
    extra = {"field": exc.field} if exc.field else {}
    if not isinstance(exc, DatabaseException):
        logger.info(
            "request_rejected",
            error=exc.__class__.__name__,
            status_code=exc.status_code,
            **extra,
        )

    return _error_response(
        request, exc.status_code, exc.__class__.__name__, exc.message, **extra
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Render framework and authentication errors."""
    return _error_response(
        request,
        exc.status_code,
        "HTTPException",
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render malformed request bodies and query strings."""
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        details=details,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and answer without internal detail."""
    logger.error("unhandled_exception", error_type=exc.__class__.__name__, exc_info=exc)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
    )
