"""Clinic and room schemas for request/response validation."""

from uuid import UUID

from pydantic import BaseModel, Field


class ClinicResponse(BaseModel):
    """Clinic record."""

    id: UUID
    name: str = Field(..., min_length=1, max_length=150)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    phone: str | None = None

    model_config = {"from_attributes": True}


class RoomResponse(BaseModel):
    """Room record; ``room_code`` is unique within its clinic."""

    id: UUID
    clinic_id: UUID
    room_code: str = Field(..., min_length=1, max_length=50)
    description: str | None = None

    model_config = {"from_attributes": True}
