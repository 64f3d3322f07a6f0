"""Doctor schemas for request/response validation."""

from uuid import UUID

from pydantic import BaseModel, Field


class DoctorResponse(BaseModel):
    """Doctor record as seen by the scheduler."""

    id: UUID
    full_name: str
    license_number: str = Field(..., min_length=1, max_length=100)
    specialties: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}
