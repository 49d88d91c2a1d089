"""Appointment endpoints.

The requester's id and role always come from the verified token, never from
the request body.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from scheduling.core.exceptions import ValidationException
from scheduling.dependencies import Appointments, CurrentUser
from scheduling.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentOutcome,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
)
from scheduling.schemas.users import UserRole

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book appointment",
)
async def book_appointment(
    data: AppointmentCreate,
    current_user: CurrentUser,
    service: Appointments,
) -> AppointmentResponse:
    """
    Book a 30-minute appointment.

    Patients book for themselves; admins and doctors must name the patient.

    Args:
        data: Booking request
        current_user: Authenticated user
        service: Appointment lifecycle

    Returns:
        Booked appointment
    """
    patient_id = data.patient_id
    if patient_id is None:
        if current_user.role != UserRole.PATIENT:
            raise ValidationException("patient_id is required", field="patient_id")
        patient_id = current_user.id

    return await service.book(
        patient_id=patient_id,
        doctor_id=data.doctor_id,
        date=data.date,
        start_time=data.start_time,
        appointment_type=data.type,
        notes=data.notes,
        created_by=current_user.id,
        requesting_role=current_user.role,
    )


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    current_user: CurrentUser,
    service: Appointments,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    date_filter: date | None = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the appointments visible to the authenticated user.

    Args:
        current_user: Authenticated user
        service: Appointment lifecycle
        status_filter: Filter by status
        date_filter: Filter by calendar date
        page: Page number
        page_size: Items per page; all rows when omitted

    Returns:
        Appointments ordered by date and start time
    """
    filters = AppointmentFilters(
        status=status_filter,
        date=date_filter,
        page=page,
        page_size=page_size,
    )

    return await service.list_appointments(current_user.id, current_user.role, filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    service: Appointments,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return await service.get_appointment(appointment_id, current_user.id, current_user.role)


@router.patch(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    current_user: CurrentUser,
    service: Appointments,
) -> AppointmentResponse:
    """
    Move an appointment to a new date and start time.

    Args:
        appointment_id: Appointment ID
        data: New slot
        current_user: Authenticated user
        service: Appointment lifecycle

    Returns:
        Rescheduled appointment
    """
    return await service.reschedule(
        appointment_id,
        data.date,
        data.start_time,
        current_user.id,
        current_user.role,
    )


@router.post(
    "/{appointment_id}/cancel",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    service: Appointments,
) -> None:
    """Cancel a scheduled appointment. The row is kept with status ``cancelled``."""
    await service.cancel(appointment_id, current_user.id, current_user.role)


@router.patch(
    "/{appointment_id}/outcome",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Record appointment outcome",
)
async def record_appointment_outcome(
    appointment_id: UUID,
    data: AppointmentOutcome,
    current_user: CurrentUser,
    service: Appointments,
) -> AppointmentResponse:
    """Mark an appointment completed or no-show (its doctor or an admin)."""
    return await service.record_outcome(
        appointment_id,
        data.status,
        current_user.id,
        current_user.role,
    )
