"""Doctor availability rules using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    SmallInteger,
    String,
    Table,
    Time,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from clinic_scheduler.models.base import metadata

doctor_availabilities = Table(
    "doctor_availabilities",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    Column(
        "doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # NULL means the rule applies at every clinic
    Column(
        "clinic_id",
        UUID(as_uuid=True),
        ForeignKey("clinics.id", ondelete="SET NULL"),
        nullable=True,
    ),
    # 0 = Sunday ... 6 = Saturday; NULL for one-off rules
    Column("day_of_week", SmallInteger, nullable=True),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    # Validity window for recurring rules, covered dates for one-off rules
    Column("start_date", Date, nullable=True),
    Column("end_date", Date, nullable=True),
    Column("is_recurring", Boolean, nullable=False, server_default=text("true")),
    Column("notes", String(255)),
    CheckConstraint("start_time < end_time", name="doctor_availabilities_time_check"),
    CheckConstraint(
        "day_of_week IS NULL OR day_of_week BETWEEN 0 AND 6",
        name="doctor_availabilities_day_check",
    ),
    CheckConstraint(
        "is_recurring OR start_date IS NOT NULL",
        name="doctor_availabilities_one_off_date_check",
    ),
)

Index(
    "idx_doctor_availabilities_doctor_clinic",
    doctor_availabilities.c.doctor_id,
    doctor_availabilities.c.clinic_id,
)
