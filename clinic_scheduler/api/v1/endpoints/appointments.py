"""Appointment booking endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from clinic_scheduler.dependencies import Booking
from clinic_scheduler.schemas.appointments import (
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatusUpdate,
)

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book appointment",
)
async def book_appointment(
    data: AppointmentCreate,
    booking: Booking,
) -> AppointmentResponse:
    """
    Book a new appointment.

    The slot must lie inside the doctor's availability and must not overlap
    another active appointment of the doctor or the room.

    Args:
        data: Booking request
        booking: Booking manager

    Returns:
        Created appointment in ``scheduled`` status
    """
    return await booking.book_appointment(
        patient_id=data.patient_id,
        doctor_id=data.doctor_id,
        clinic_id=data.clinic_id,
        room_id=data.room_id,
        start=data.scheduled_start,
        end=data.scheduled_end,
        created_by=data.created_by,
        notes=data.notes,
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    booking: Booking,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return await booking.get_appointment(appointment_id)


@router.put(
    "/{appointment_id}/schedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    booking: Booking,
) -> AppointmentResponse:
    """
    Move an appointment to a new time.

    The current slot is kept until the new one passes every check.

    Args:
        appointment_id: Appointment ID
        data: New span and optional room
        booking: Booking manager

    Returns:
        Updated appointment
    """
    return await booking.reschedule_appointment(
        appointment_id,
        start=data.scheduled_start,
        end=data.scheduled_end,
        room_id=data.room_id,
    )


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    booking: Booking,
) -> AppointmentResponse:
    """
    Update appointment status (check in, complete, cancel, no-show).

    Args:
        appointment_id: Appointment ID
        data: Target status
        booking: Booking manager

    Returns:
        Updated appointment
    """
    return await booking.transition_status(appointment_id, data.status)
