"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from scheduling.config import settings
from scheduling.core.redis_client import CacheManager, get_redis_client
from scheduling.core.security import subject_from_token
from scheduling.database import get_db
from scheduling.schemas.users import UserInDB
from scheduling.services.appointment_service import AppointmentService
from scheduling.services.appointment_store import AppointmentStore
from scheduling.services.notification_service import NotificationService
from scheduling.services.user_service import UserService

# Security
security = HTTPBearer()


def get_user_service() -> UserService:
    """User service backed by the Redis profile cache."""
    return UserService(CacheManager(get_redis_client()))


def get_notification_service() -> NotificationService:
    """Notifier for appointment lifecycle events."""
    return NotificationService(enabled=settings.notifications_enabled)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract the caller's user ID from the bearer token.

    Raises:
        HTTPException: If the token is invalid, expired or has no usable subject
    """
    user_id = subject_from_token(credentials.credentials)

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_id


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> UserInDB:
    """
    Get current user, including their role, from the database.

    Args:
        user_id: User ID from JWT token
        db: Database session
        user_service: User lookup service

    Returns:
        Verified user

    Raises:
        HTTPException: If user not found or inactive
    """
    user = await user_service.get_user_by_id(db, user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return user


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    notifier: Annotated[NotificationService, Depends(get_notification_service)],
) -> AppointmentService:
    """Appointment lifecycle bound to the request's session."""
    return AppointmentService(AppointmentStore(db), notifier)


# Type aliases for dependency injection
CurrentUser = Annotated[UserInDB, Depends(get_current_user)]
Appointments = Annotated[AppointmentService, Depends(get_appointment_service)]
