"""Availability rule schemas.

Stored rows carry nullable ``day_of_week``/``start_date``/``end_date`` columns
plus an ``is_recurring`` flag. The scheduler works with a tagged variant
instead, so each rule kind only has the fields that mean something for it.
"""

from datetime import date, datetime, time
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter, model_validator


class _RuleBase(BaseModel):
    id: UUID
    doctor_id: UUID
    clinic_id: UUID | None = None
    start_time: time
    end_time: time
    notes: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_times(self):
        """Validate the daily window is ordered."""
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class RecurringAvailability(_RuleBase):
    """Weekly rule, optionally bounded by a validity window."""

    kind: Literal["recurring"] = "recurring"
    # 0 = Sunday ... 6 = Saturday
    day_of_week: int = Field(..., ge=0, le=6)
    valid_from: date | None = None
    valid_to: date | None = None

    def applies_on(self, day: date) -> bool:
        """Check whether the rule covers the given calendar date."""
        if (day.weekday() + 1) % 7 != self.day_of_week:
            return False
        if self.valid_from is not None and day < self.valid_from:
            return False
        if self.valid_to is not None and day > self.valid_to:
            return False
        return True


class OneOffAvailability(_RuleBase):
    """Ad-hoc rule covering each date in ``[on_date, end_date]``."""

    kind: Literal["one_off"] = "one_off"
    on_date: date
    end_date: date | None = None

    def applies_on(self, day: date) -> bool:
        """Check whether the rule covers the given calendar date."""
        return self.on_date <= day <= (self.end_date or self.on_date)


AvailabilityRule = Annotated[
    RecurringAvailability | OneOffAvailability,
    Field(discriminator="kind"),
]

_rule_adapter: TypeAdapter[RecurringAvailability | OneOffAvailability] = TypeAdapter(
    AvailabilityRule
)


def availability_rule_from_row(row: dict[str, Any]) -> RecurringAvailability | OneOffAvailability:
    """
    Build a rule variant from a ``doctor_availabilities`` row.

    Args:
        row: Row mapping with the table's columns

    Returns:
        Recurring or one-off rule

    Raises:
        pydantic.ValidationError: If the row does not describe a valid rule
    """
    common = {
        "id": row["id"],
        "doctor_id": row["doctor_id"],
        "clinic_id": row.get("clinic_id"),
        "start_time": row["start_time"],
        "end_time": row["end_time"],
        "notes": row.get("notes"),
    }
    if row.get("is_recurring", True):
        return _rule_adapter.validate_python(
            {
                **common,
                "kind": "recurring",
                "day_of_week": row.get("day_of_week"),
                "valid_from": row.get("start_date"),
                "valid_to": row.get("end_date"),
            }
        )
    return _rule_adapter.validate_python(
        {
            **common,
            "kind": "one_off",
            "on_date": row.get("start_date"),
            "end_date": row.get("end_date"),
        }
    )


class IntervalResponse(BaseModel):
    """Concrete half-open interval."""

    start: datetime
    end: datetime


class AvailabilityResponse(BaseModel):
    """Bookable or open intervals for a doctor over a date range."""

    doctor_id: UUID
    clinic_id: UUID | None = None
    from_date: date
    to_date: date
    intervals: list[IntervalResponse]
