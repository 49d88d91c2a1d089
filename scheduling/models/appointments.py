"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Table,
    Text,
    Time,
    Uuid,
    func,
    text,
)

from scheduling.models.metadata import metadata

SLOT_INDEX_NAME = "uq_appointments_doctor_slot"

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True),
    # Ownership / references
    Column("patient_id", Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False),
    Column("doctor_id", Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False),
    # Slot
    Column("date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    # Appointment details
    Column("type", Text, nullable=False, server_default=text("'regular'")),
    Column("status", Text, nullable=False, server_default=text("'scheduled'")),
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_by", Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "type IN ('regular', 'follow-up', 'emergency')",
        name="appointments_type_check",
    ),
    CheckConstraint(
        "status IN ('scheduled', 'completed', 'cancelled', 'no-show')",
        name="appointments_status_check",
    ),
    Index("ix_appointments_patient_id", "patient_id"),
    Index("ix_appointments_doctor_date", "doctor_id", "date"),
    Index("ix_appointments_date_start_time", "date", "start_time"),
    # One live appointment per doctor slot; cancelled rows free the slot
    Index(
        SLOT_INDEX_NAME,
        "doctor_id",
        "date",
        "start_time",
        unique=True,
        postgresql_where=text("status <> 'cancelled'"),
        sqlite_where=text("status <> 'cancelled'"),
    ),
)
