"""Liveness and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

from scheduling.config import settings
from scheduling.core.firebase import get_firebase_app
from scheduling.core.redis_client import check_redis_connection
from scheduling.database import check_database_connection

router = APIRouter()

ComponentStatus = Literal["healthy", "unhealthy", "unavailable", "disabled"]


class HealthResponse(BaseModel):
    """Liveness response."""

    status: Literal["healthy", "degraded"]
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Readiness response with the state of each backing service."""

    database: ComponentStatus
    redis: ComponentStatus
    notifications: ComponentStatus


def _notifications_status() -> ComponentStatus:
    if not settings.notifications_enabled:
        return "disabled"
    try:
        get_firebase_app()
    except RuntimeError:
        return "unavailable"
    return "healthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """The process is up and serving requests."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check(request: Request) -> DetailedHealthResponse:
    """
    Check the appointment store and the profile cache.

    The service is degraded when either is down. Notifications are
    fire-and-forget and never affect the overall status.
    """
    database_ok = await check_database_connection(request.app.state.engine)
    redis_ok = await check_redis_connection()

    return DetailedHealthResponse(
        status="healthy" if database_ok and redis_ok else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if database_ok else "unhealthy",
        redis="healthy" if redis_ok else "unhealthy",
        notifications=_notifications_status(),
    )


@router.get("/ping", status_code=status.HTTP_200_OK, summary="Simple ping")
async def ping() -> dict[str, str]:
    return {"message": "pong"}
