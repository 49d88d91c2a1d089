"""Persistence for appointments.

The store holds no scheduling rules. It owns the SQL, the ordering of list
queries and the translation of database failures into application errors.
"""

import zlib
from collections.abc import Iterable
from datetime import UTC, date, datetime
from typing import Any, NoReturn
from uuid import UUID, uuid4

import structlog
from sqlalchemy import and_, false, func, insert, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scheduling.core.exceptions import (
    ConflictException,
    DatabaseException,
    InvalidStateException,
    NotFoundException,
)
from scheduling.models.appointments import SLOT_INDEX_NAME, appointments
from scheduling.schemas.appointments import (
    AppointmentFilters,
    AppointmentResponse,
    AppointmentStatus,
)
from scheduling.schemas.users import UserRole

logger = structlog.get_logger(__name__)

IMMUTABLE_FIELDS = frozenset({"id", "created_by", "created_at"})


def _is_slot_violation(exc: IntegrityError) -> bool:
    """Tell a double-booked slot apart from other integrity failures."""
    message = str(exc.orig)
    if SLOT_INDEX_NAME in message:
        return True
    # SQLite names the columns instead of the index
    return "UNIQUE constraint failed" in message and "appointments.doctor_id" in message


class AppointmentStore:
    """Durable CRUD for appointment rows."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def insert(self, values: dict[str, Any]) -> AppointmentResponse:
        """
        Persist a new appointment.

        Args:
            values: Column values; ``id`` and timestamps are assigned when absent

        Returns:
            Canonical stored row

        Raises:
            ConflictException: If the doctor's slot is already taken
            DatabaseException: On any other persistence failure
        """
        now = datetime.now(UTC)
        row_values = dict(values)
        if row_values.get("id") is None:
            row_values["id"] = uuid4()
        for field in ("created_at", "updated_at"):
            if row_values.get(field) is None:
                row_values[field] = now

        stmt = insert(appointments).values(**row_values).returning(appointments)

        try:
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._handle_write_error(e, operation="insert")

        return AppointmentResponse.model_validate(dict(row._mapping))

    async def update(
        self,
        appointment_id: UUID,
        fields: dict[str, Any],
        expected_status: AppointmentStatus | None = None,
    ) -> AppointmentResponse:
        """
        Apply the supplied fields to an appointment and refresh ``updated_at``.

        Args:
            appointment_id: Appointment ID
            fields: Columns to change
            expected_status: Only write if the row still has this status

        Returns:
            Canonical stored row

        Raises:
            NotFoundException: If the appointment does not exist
            InvalidStateException: If the row no longer has ``expected_status``
            ConflictException: If the new slot is already taken
            DatabaseException: On any other persistence failure
        """
        forbidden = IMMUTABLE_FIELDS.intersection(fields)
        if forbidden:
            raise ValueError(f"Immutable appointment fields: {', '.join(sorted(forbidden))}")

        update_values = {**fields, "updated_at": datetime.now(UTC)}

        conditions = [appointments.c.id == appointment_id]
        if expected_status is not None:
            conditions.append(appointments.c.status == expected_status.value)

        stmt = (
            update(appointments)
            .where(and_(*conditions))
            .values(**update_values)
            .returning(appointments)
        )

        try:
            result = await self.db.execute(stmt)
            row = result.fetchone()
        except SQLAlchemyError as e:
            await self._handle_write_error(e, operation="update")

        if row is None:
            await self.db.rollback()
            if expected_status is not None and await self.find_by_id(appointment_id):
                raise InvalidStateException(f"Appointment is no longer {expected_status.value}")
            raise NotFoundException("Appointment not found")

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._handle_write_error(e, operation="update")

        return AppointmentResponse.model_validate(dict(row._mapping))

    async def find_by_id(self, appointment_id: UUID) -> AppointmentResponse | None:
        """Get an appointment by ID, or ``None`` when it does not exist."""
        stmt = select(appointments).where(appointments.c.id == appointment_id)

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            self._raise_unavailable(e, operation="find_by_id")

        row = result.fetchone()
        if not row:
            return None

        return AppointmentResponse.model_validate(dict(row._mapping))

    async def find_by_role(
        self,
        user_id: UUID,
        role: UserRole,
        filters: AppointmentFilters | None = None,
    ) -> tuple[int, list[AppointmentResponse]]:
        """
        List the appointments visible to a user.

        Patients see rows where they are the patient, doctors rows where they
        are the doctor, admins every row. Rows are ordered by date, then start
        time, with the id as a final tie-break.

        Args:
            user_id: ID of requesting user
            role: Role of requesting user
            filters: Optional status/date filters and pagination

        Returns:
            Total number of matching rows and the requested page of rows
        """
        filters = filters or AppointmentFilters()
        conditions = []

        if role == UserRole.PATIENT:
            conditions.append(appointments.c.patient_id == user_id)
        elif role == UserRole.DOCTOR:
            conditions.append(appointments.c.doctor_id == user_id)
        elif role != UserRole.ADMIN:
            return 0, []

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.date:
            conditions.append(appointments.c.date == filters.date)

        count_stmt = select(func.count()).select_from(appointments)
        stmt = select(appointments)

        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(
            appointments.c.date.asc(),
            appointments.c.start_time.asc(),
            appointments.c.id.asc(),
        )

        if filters.page_size:
            stmt = stmt.limit(filters.page_size).offset((filters.page - 1) * filters.page_size)

        try:
            total_result = await self.db.execute(count_stmt)
            total = total_result.scalar() or 0

            result = await self.db.execute(stmt)
            rows = result.fetchall()
        except SQLAlchemyError as e:
            self._raise_unavailable(e, operation="find_by_role")

        return total, [AppointmentResponse.model_validate(dict(row._mapping)) for row in rows]

    async def find_active_for_doctor(
        self,
        doctor_id: UUID,
        dates: Iterable[date],
        exclude_id: UUID | None = None,
    ) -> list[AppointmentResponse]:
        """
        Get a doctor's non-cancelled appointments on the given dates.

        Args:
            doctor_id: Doctor ID
            dates: Calendar dates to search
            exclude_id: Appointment to leave out (the one being rescheduled)

        Returns:
            Matching appointments
        """
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.date.in_(list(dates)),
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        ]

        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = select(appointments).where(and_(*conditions))

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            self._raise_unavailable(e, operation="find_active_for_doctor")

        return [AppointmentResponse.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def lock_doctor_schedule(self, doctor_id: UUID, days: Iterable[date]) -> None:
        """
        Serialize slot changes touching the doctor's ``days`` until the next commit.

        PostgreSQL takes one transaction-scoped advisory lock per day, in date
        order, so two writers sharing any day wait for each other. SQLite has
        no row or advisory locks; there the database write lock is taken up
        front, which serializes every slot change.
        """
        dialect = self.db.get_bind().dialect.name

        try:
            if dialect == "postgresql":
                for day in sorted(set(days)):
                    key = zlib.crc32(f"{doctor_id}:{day.isoformat()}".encode())
                    await self.db.execute(
                        text("SELECT pg_advisory_xact_lock(:key)"), {"key": key}
                    )
            elif dialect == "sqlite":
                # A write that matches nothing still opens the write transaction
                await self.db.execute(
                    update(appointments).where(false()).values(status=appointments.c.status)
                )
        except SQLAlchemyError as e:
            self._raise_unavailable(e, operation="lock_doctor_schedule")

    async def rollback(self) -> None:
        """Discard the current transaction, releasing any slot lock."""
        await self.db.rollback()

    async def _handle_write_error(self, exc: SQLAlchemyError, operation: str) -> NoReturn:
        """Roll back and translate a failed write."""
        await self.db.rollback()

        if isinstance(exc, IntegrityError) and _is_slot_violation(exc):
            logger.info("appointment_slot_taken", operation=operation)
            raise ConflictException(
                "The doctor already has an appointment in this slot", field="start_time"
            ) from exc

        self._raise_unavailable(exc, operation=operation)

    @staticmethod
    def _raise_unavailable(exc: SQLAlchemyError, operation: str) -> NoReturn:
        logger.error("appointment_store_failed", operation=operation, error=str(exc))
        raise DatabaseException() from exc
