"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from clinic_scheduler.models.base import metadata

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    # Ownership / references
    Column(
        "patient_id",
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column(
        "clinic_id",
        UUID(as_uuid=True),
        ForeignKey("clinics.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column(
        "room_id",
        UUID(as_uuid=True),
        ForeignKey("rooms.id", ondelete="SET NULL"),
        nullable=True,
    ),
    # Appointment span, half-open [scheduled_start, scheduled_end)
    Column("scheduled_start", TIMESTAMP(timezone=True), nullable=False),
    Column("scheduled_end", TIMESTAMP(timezone=True), nullable=False),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default="scheduled",
    ),
    # User who created the booking (receptionist, patient)
    Column("created_by", UUID(as_uuid=True), nullable=True),
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("cancelled_at", TIMESTAMP(timezone=True), nullable=True),
    # Constraints
    CheckConstraint(
        "scheduled_end > scheduled_start",
        name="appointments_span_check",
    ),
    CheckConstraint(
        "status IN ('scheduled', 'checked_in', 'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
)

# Overlap checks filter by resource first, then by span
Index(
    "idx_appointments_doctor_time",
    appointments.c.doctor_id,
    appointments.c.scheduled_start,
    appointments.c.scheduled_end,
)
Index(
    "idx_appointments_room_time",
    appointments.c.room_id,
    appointments.c.scheduled_start,
    appointments.c.scheduled_end,
)
