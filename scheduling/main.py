"""FastAPI application for hospital appointment scheduling."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import redis
import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from scheduling.api.v1.router import api_router
from scheduling.config import settings
from scheduling.core.exceptions import AppException
from scheduling.core.firebase import initialize_firebase
from scheduling.core.redis_client import close_redis_connection, get_redis_client
from scheduling.database import check_database_connection, create_engine, create_session_factory
from scheduling.middleware.error_handler import (
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from scheduling.middleware.logging import LoggingMiddleware, configure_logging

configure_logging()
logger = structlog.get_logger(__name__)


def _start_notifications() -> None:
    if not settings.notifications_enabled:
        logger.info("notifications_disabled")
        return

    try:
        initialize_firebase(settings.firebase_credentials_path, settings.firebase_config_json)
    except Exception as e:
        # Bookings still work; participants just are not told about them
        logger.warning("firebase_initialization_failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the appointment store at startup and close it at shutdown.

    The engine lives on ``app.state`` so request handlers never reach for a
    module-level connection pool.
    """
    logger.info("application_startup", environment=settings.environment)

    app.state.engine = create_engine()
    app.state.session_factory = create_session_factory(app.state.engine)

    if await check_database_connection(app.state.engine):
        logger.info("database_connected")
    else:
        logger.error("database_connection_failed")

    try:
        get_redis_client().ping()
        logger.info("redis_connected")
    except redis.RedisError as e:
        logger.error("redis_connection_failed", error=str(e))

    _start_notifications()

    yield

    await app.state.engine.dispose()
    close_redis_connection()
    logger.info("application_shutdown")


EXCEPTION_HANDLERS = {
    AppException: app_exception_handler,
    StarletteHTTPException: http_exception_handler,
    RequestValidationError: validation_exception_handler,
    Exception: general_exception_handler,
}


def create_app() -> FastAPI:
    """Assemble the scheduling API with its middleware, handlers and metrics."""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Booking, rescheduling and cancellation of hospital appointments",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PATCH"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )
    application.add_middleware(LoggingMiddleware)

    for exc_class, handler in EXCEPTION_HANDLERS.items():
        application.add_exception_handler(exc_class, handler)  # type: ignore[arg-type]

    application.include_router(api_router, prefix=settings.api_v1_prefix)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics", "/docs", "/redoc", "/openapi.json"],
    ).instrument(application).expose(application, endpoint="/metrics", include_in_schema=False)

    @application.get("/", tags=["Root"])
    async def service_info() -> dict[str, str]:
        """Service name, version and API entry points."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "api": settings.api_v1_prefix,
            "docs": "/docs",
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "scheduling.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
