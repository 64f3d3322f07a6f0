"""Patient schemas."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel


class PatientResponse(BaseModel):
    """Patient record as seen by the scheduler."""

    id: UUID
    full_name: str
    date_of_birth: date | None = None
    phone: str | None = None

    model_config = {"from_attributes": True}
