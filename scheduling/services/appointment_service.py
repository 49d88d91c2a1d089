"""Appointment service for business logic.

All scheduling rules live here: the status state machine, which role may
request which transition, and slot validation. Persistence goes through
``AppointmentStore``; participants are notified after each successful change.
"""

from datetime import date, time, timedelta
from uuid import UUID

import structlog

from scheduling.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from scheduling.core.slots import derive_end_time, overlaps, parse_time_of_day, slot_interval
from scheduling.schemas.appointments import (
    OUTCOME_STATUSES,
    TERMINAL_STATUSES,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentType,
)
from scheduling.schemas.users import UserRole
from scheduling.services.appointment_store import AppointmentStore
from scheduling.services.notification_service import AppointmentEvent, NotificationService

logger = structlog.get_logger(__name__)


def _coerce_role(role: UserRole | str) -> UserRole:
    try:
        return UserRole(role)
    except ValueError:
        raise ForbiddenException(f"Unknown role '{role}'")


def _coerce_type(appointment_type: AppointmentType | str) -> AppointmentType:
    try:
        return AppointmentType(appointment_type)
    except ValueError:
        allowed = ", ".join(t.value for t in AppointmentType)
        raise ValidationException(
            f"Unknown appointment type '{appointment_type}' (expected one of: {allowed})",
            field="type",
        )


def _ensure_not_past(day: date, field: str = "date") -> None:
    if day < date.today():
        raise ValidationException("Appointment date cannot be in the past", field=field)


def _can_view(appointment: AppointmentResponse, user_id: UUID, role: UserRole) -> bool:
    if role == UserRole.ADMIN:
        return True
    if role == UserRole.PATIENT:
        return appointment.patient_id == user_id
    if role == UserRole.DOCTOR:
        return appointment.doctor_id == user_id
    return False


class AppointmentService:
    """Service for managing the appointment lifecycle."""

    def __init__(self, store: AppointmentStore, notifier: NotificationService | None = None):
        """Initialize service with a store and an optional notifier."""
        self.store = store
        self.notifier = notifier

    async def book(
        self,
        patient_id: UUID,
        doctor_id: UUID,
        date: date,
        start_time: str | time,
        appointment_type: AppointmentType | str,
        notes: str | None,
        created_by: UUID,
        requesting_role: UserRole | str,
    ) -> AppointmentResponse:
        """
        Book a new appointment in ``scheduled`` state.

        Args:
            patient_id: Patient the appointment is for
            doctor_id: Doctor seeing the patient
            date: Calendar date of the appointment
            start_time: Start time of day (``HH:MM``)
            appointment_type: One of regular, follow-up, emergency
            notes: Optional free text
            created_by: Verified ID of the user making the booking
            requesting_role: Verified role of that user

        Returns:
            Canonical stored appointment

        Raises:
            ValidationException: Past date or unknown type
            InvalidTimeException: Malformed start time
            ForbiddenException: Patient booking for someone else, or doctor
                booking for another doctor
            ConflictException: The doctor already has an overlapping appointment
        """
        _ensure_not_past(date)
        start = parse_time_of_day(start_time)
        kind = _coerce_type(appointment_type)
        role = _coerce_role(requesting_role)

        if role == UserRole.PATIENT and patient_id != created_by:
            raise ForbiddenException("Patients can only book appointments for themselves")
        if role == UserRole.DOCTOR and doctor_id != created_by:
            raise ForbiddenException("Doctors can only book appointments in their own schedule")

        await self._ensure_slot_free(doctor_id, date, start)

        appointment = await self.store.insert(
            {
                "patient_id": patient_id,
                "doctor_id": doctor_id,
                "date": date,
                "start_time": start,
                "end_time": derive_end_time(start),
                "type": kind.value,
                "status": AppointmentStatus.SCHEDULED.value,
                "notes": notes,
                "created_by": created_by,
            }
        )

        logger.info(
            "appointment_booked",
            appointment_id=str(appointment.id),
            doctor_id=str(doctor_id),
            date=date.isoformat(),
            start_time=start.strftime("%H:%M"),
            created_by=str(created_by),
        )
        await self._notify(AppointmentEvent.BOOKED, appointment)

        return appointment

    async def reschedule(
        self,
        appointment_id: UUID,
        new_date: date,
        new_start_time: str | time,
        requesting_user_id: UUID,
        requesting_role: UserRole | str,
    ) -> AppointmentResponse:
        """
        Move a scheduled appointment to a new slot.

        Only the owning patient or an admin may reschedule. The status stays
        ``scheduled``; date, start and end time are replaced.

        Raises:
            NotFoundException: Unknown appointment
            ForbiddenException: Requester is not the owning patient or an admin
            InvalidStateException: Appointment is not scheduled
            ValidationException: New date is in the past
            InvalidTimeException: Malformed start time
            ConflictException: The doctor already has an overlapping appointment
        """
        role = _coerce_role(requesting_role)
        current = await self._get_existing(appointment_id)
        self._require_patient_or_admin(current, requesting_user_id, role, "reschedule")
        self._require_scheduled(current, "rescheduled")

        _ensure_not_past(new_date)
        start = parse_time_of_day(new_start_time)

        await self._ensure_slot_free(current.doctor_id, new_date, start, exclude_id=current.id)

        appointment = await self.store.update(
            appointment_id,
            {
                "date": new_date,
                "start_time": start,
                "end_time": derive_end_time(start),
            },
            expected_status=AppointmentStatus.SCHEDULED,
        )

        logger.info(
            "appointment_rescheduled",
            appointment_id=str(appointment_id),
            from_date=current.date.isoformat(),
            to_date=new_date.isoformat(),
            start_time=start.strftime("%H:%M"),
            requested_by=str(requesting_user_id),
        )
        await self._notify(AppointmentEvent.RESCHEDULED, appointment)

        return appointment

    async def cancel(
        self,
        appointment_id: UUID,
        requesting_user_id: UUID,
        requesting_role: UserRole | str,
    ) -> None:
        """
        Cancel a scheduled appointment. Irreversible.

        Raises:
            NotFoundException: Unknown appointment
            ForbiddenException: Requester is not the owning patient or an admin
            InvalidStateException: Appointment is already in a terminal state
        """
        role = _coerce_role(requesting_role)
        current = await self._get_existing(appointment_id)
        self._require_patient_or_admin(current, requesting_user_id, role, "cancel")
        self._require_scheduled(current, "cancelled")

        appointment = await self.store.update(
            appointment_id,
            {"status": AppointmentStatus.CANCELLED.value},
            expected_status=AppointmentStatus.SCHEDULED,
        )

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            requested_by=str(requesting_user_id),
        )
        await self._notify(AppointmentEvent.CANCELLED, appointment)

    async def record_outcome(
        self,
        appointment_id: UUID,
        outcome: AppointmentStatus | str,
        requesting_user_id: UUID,
        requesting_role: UserRole | str,
    ) -> AppointmentResponse:
        """
        Mark a scheduled appointment as completed or as a no-show.

        Only the appointment's doctor or an admin may record the outcome.
        """
        try:
            status = AppointmentStatus(outcome)
        except ValueError:
            status = None
        if status not in OUTCOME_STATUSES:
            raise ValidationException(
                "Outcome must be 'completed' or 'no-show'",
                field="status",
            )

        role = _coerce_role(requesting_role)
        current = await self._get_existing(appointment_id)

        is_own_doctor = role == UserRole.DOCTOR and current.doctor_id == requesting_user_id
        if not (is_own_doctor or role == UserRole.ADMIN):
            raise ForbiddenException(
                "Only the appointment's doctor or an admin can record outcomes"
            )

        self._require_scheduled(current, status.value)

        appointment = await self.store.update(
            appointment_id,
            {"status": status.value},
            expected_status=AppointmentStatus.SCHEDULED,
        )

        logger.info(
            "appointment_outcome_recorded",
            appointment_id=str(appointment_id),
            status=status.value,
            requested_by=str(requesting_user_id),
        )

        return appointment

    async def get_appointment(
        self,
        appointment_id: UUID,
        requesting_user_id: UUID,
        requesting_role: UserRole | str,
    ) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the requester may not see it
        """
        role = _coerce_role(requesting_role)
        appointment = await self._get_existing(appointment_id)

        if not _can_view(appointment, requesting_user_id, role):
            raise ForbiddenException("Access denied to this appointment")

        return appointment

    async def list_appointments(
        self,
        requesting_user_id: UUID,
        requesting_role: UserRole | str,
        filters: AppointmentFilters | None = None,
    ) -> AppointmentListResponse:
        """
        List the appointments visible to the requester.

        Patients get their own appointments, doctors the ones they are seeing,
        admins everything. Ordered by date, then start time.
        """
        role = _coerce_role(requesting_role)
        filters = filters or AppointmentFilters()

        total, items = await self.store.find_by_role(requesting_user_id, role, filters)

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=items,
        )

    async def _get_existing(self, appointment_id: UUID) -> AppointmentResponse:
        appointment = await self.store.find_by_id(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        return appointment

    @staticmethod
    def _require_patient_or_admin(
        appointment: AppointmentResponse,
        user_id: UUID,
        role: UserRole,
        action: str,
    ) -> None:
        if role == UserRole.ADMIN:
            return
        if role == UserRole.PATIENT and appointment.patient_id == user_id:
            return
        raise ForbiddenException(f"Only the patient or an admin can {action} this appointment")

    @staticmethod
    def _require_scheduled(appointment: AppointmentResponse, target: str) -> None:
        if appointment.status in TERMINAL_STATUSES:
            raise InvalidStateException(
                f"Appointment is {appointment.status.value} and cannot be {target}"
            )

    async def _ensure_slot_free(
        self,
        doctor_id: UUID,
        day: date,
        start: time,
        exclude_id: UUID | None = None,
    ) -> None:
        """
        Reject a slot that overlaps another live appointment of the doctor.

        Neighbouring dates are searched too, as a slot near midnight runs into
        the next day. Every searched date is locked first, so concurrent
        writers whose slots could overlap see each other's rows.
        """
        days = [day - timedelta(days=1), day, day + timedelta(days=1)]
        await self.store.lock_doctor_schedule(doctor_id, days)

        candidate = slot_interval(day, start)
        existing = await self.store.find_active_for_doctor(
            doctor_id, days, exclude_id=exclude_id
        )

        for other in existing:
            if overlaps(candidate, slot_interval(other.date, other.start_time)):
                await self.store.rollback()
                logger.info(
                    "appointment_conflict",
                    doctor_id=str(doctor_id),
                    date=day.isoformat(),
                    start_time=start.strftime("%H:%M"),
                    conflicting_id=str(other.id),
                )
                raise ConflictException(
                    "The doctor already has an appointment overlapping this slot",
                    field="start_time",
                )

    async def _notify(self, event: AppointmentEvent, appointment: AppointmentResponse) -> None:
        if self.notifier is None:
            return

        try:
            await self.notifier.send_appointment_event(event, appointment)
        except Exception as e:
            # Log error but don't fail the request
            logger.warning(
                "appointment_notification_failed",
                notification_event=event.value,
                appointment_id=str(appointment.id),
                error=str(e),
            )
