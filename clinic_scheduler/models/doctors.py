"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from clinic_scheduler.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("user_id", UUID(as_uuid=True), unique=True, index=True),
    Column("full_name", Text, nullable=False),
    # Professional credentials
    Column("license_number", String(100), nullable=False, unique=True, index=True),
    Column("license_state", String(50)),
    Column("bio", Text),
    Column("experience_years", Integer),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
)

# Many-to-many between doctors and specialty names
doctor_specialties = Table(
    "doctor_specialties",
    metadata,
    Column(
        "doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("specialty", String(100), primary_key=True),
)
