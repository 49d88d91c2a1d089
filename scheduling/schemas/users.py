"""User schemas for the identity context."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class UserRole(str, Enum):
    """Roles recognised by the scheduling rules."""

    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"


class UserInDB(BaseModel):
    """User schema as stored in database."""

    id: UUID
    email: str
    full_name: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
