"""Appointment schemas for request/response validation."""

import datetime as dt
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


# No transition leaves these states
TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)

# Outcomes recorded once the visit has (or has not) taken place
OUTCOME_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW})


class AppointmentType(str, Enum):
    """Appointment type enumeration."""

    REGULAR = "regular"
    FOLLOW_UP = "follow-up"
    EMERGENCY = "emergency"


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment.

    ``start_time`` stays a string here so malformed values are reported by the
    slot parser with the time-specific error rather than a generic 422.
    """

    patient_id: UUID | None = Field(
        None, description="Defaults to the requesting patient; required for admins and doctors"
    )
    doctor_id: UUID
    date: dt.date
    start_time: str = Field(..., examples=["09:00"])
    type: str = Field(AppointmentType.REGULAR.value, examples=["regular", "follow-up"])
    notes: str | None = Field(None, max_length=1000)


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment to a new slot."""

    date: dt.date
    start_time: str = Field(..., examples=["14:15"])


class AppointmentOutcome(BaseModel):
    """Schema for recording how a scheduled appointment ended."""

    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    type: AppointmentType
    status: AppointmentStatus
    notes: str | None = None
    created_by: UUID
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: dt.time) -> str:
        """Render times of day as ``HH:MM``."""
        return value.strftime("%H:%M")


class AppointmentListResponse(BaseModel):
    """Schema for appointment list response ordered by date and start time."""

    total: int
    page: int
    page_size: int | None
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering.

    Without ``page_size`` every matching row is returned.
    """

    status: AppointmentStatus | None = None
    date: dt.date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int | None = Field(default=None, ge=1, le=100)
