"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CHECKED_IN = "checked_in"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class _SpanMixin(BaseModel):
    """Validate that a request span is ordered."""

    @model_validator(mode="after")
    def validate_span(self):
        """Validate end time is after start time."""
        start = getattr(self, "scheduled_start", None)
        end = getattr(self, "scheduled_end", None)
        if start is None or end is None:
            return self
        if (start.tzinfo is None) != (end.tzinfo is None):
            raise ValueError("Start and end must both be naive or both be timezone-aware")
        if end <= start:
            raise ValueError("End time must be after start time")
        return self


class AppointmentCreate(_SpanMixin):
    """Schema for booking a new appointment."""

    patient_id: UUID
    doctor_id: UUID
    clinic_id: UUID
    room_id: UUID | None = None
    scheduled_start: datetime
    scheduled_end: datetime
    created_by: UUID | None = None
    notes: str | None = Field(None, max_length=1000)


class AppointmentReschedule(_SpanMixin):
    """Schema for moving an appointment to a new span."""

    scheduled_start: datetime
    scheduled_end: datetime
    room_id: UUID | None = Field(
        None, description="New room; omit to keep the current room"
    )


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    """Appointment record."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    clinic_id: UUID
    room_id: UUID | None = None
    scheduled_start: datetime
    scheduled_end: datetime
    status: AppointmentStatus
    created_by: UUID | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}
