"""Doctor availability endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from clinic_scheduler.dependencies import Booking
from clinic_scheduler.schemas.availability import AvailabilityResponse, IntervalResponse

router = APIRouter()


@router.get(
    "/{doctor_id}/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Bookable windows",
)
async def get_availability(
    doctor_id: UUID,
    booking: Booking,
    from_date: date = Query(..., description="First day, inclusive"),
    to_date: date = Query(..., description="Last day, inclusive"),
    clinic_id: UUID | None = Query(None),
) -> AvailabilityResponse:
    """Expand the doctor's availability rules into concrete windows."""
    intervals = await booking.bookable_intervals(doctor_id, clinic_id, from_date, to_date)
    return AvailabilityResponse(
        doctor_id=doctor_id,
        clinic_id=clinic_id,
        from_date=from_date,
        to_date=to_date,
        intervals=[IntervalResponse(start=i.start, end=i.end) for i in intervals],
    )


@router.get(
    "/{doctor_id}/open-slots",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Free windows",
)
async def get_open_slots(
    doctor_id: UUID,
    booking: Booking,
    from_date: date = Query(..., description="First day, inclusive"),
    to_date: date = Query(..., description="Last day, inclusive"),
    clinic_id: UUID | None = Query(None),
) -> AvailabilityResponse:
    """Availability windows minus the doctor's active appointments."""
    intervals = await booking.find_open_slots(doctor_id, clinic_id, from_date, to_date)
    return AvailabilityResponse(
        doctor_id=doctor_id,
        clinic_id=clinic_id,
        from_date=from_date,
        to_date=to_date,
        intervals=[IntervalResponse(start=i.start, end=i.end) for i in intervals],
    )
