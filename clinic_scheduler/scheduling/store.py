"""Persistence port consumed by the scheduling core."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from clinic_scheduler.schemas.appointments import AppointmentResponse, AppointmentStatus
from clinic_scheduler.schemas.availability import OneOffAvailability, RecurringAvailability
from clinic_scheduler.schemas.clinics import ClinicResponse, RoomResponse
from clinic_scheduler.schemas.doctors import DoctorResponse
from clinic_scheduler.schemas.patients import PatientResponse


class SchedulingStore(Protocol):
    """
    Data access the scheduler needs.

    Writes are single-row operations and must be atomic on their own; the
    scheduler provides cross-row serialization through exclusion scopes.
    """

    async def get_patient(self, patient_id: UUID) -> PatientResponse | None: ...

    async def get_doctor(self, doctor_id: UUID) -> DoctorResponse | None: ...

    async def get_clinic(self, clinic_id: UUID) -> ClinicResponse | None: ...

    async def get_room(self, room_id: UUID) -> RoomResponse | None: ...

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse | None: ...

    async def list_availability_rules(
        self,
        doctor_id: UUID,
        clinic_id: UUID | None = None,
    ) -> list[RecurringAvailability | OneOffAvailability]:
        """Rules for the doctor; with a clinic, that clinic's rules plus unscoped ones."""
        ...

    async def list_blocking_appointments(
        self,
        doctor_id: UUID,
        room_id: UUID | None,
        start: datetime,
        end: datetime,
    ) -> list[AppointmentResponse]:
        """Non-cancelled, non-no-show appointments of the doctor or room overlapping the span."""
        ...

    async def insert_appointment(self, appointment: AppointmentResponse) -> AppointmentResponse: ...

    async def update_appointment_status(
        self,
        appointment_id: UUID,
        status: AppointmentStatus,
        changed_at: datetime,
    ) -> AppointmentResponse: ...

    async def update_appointment_span(
        self,
        appointment_id: UUID,
        start: datetime,
        end: datetime,
        room_id: UUID | None,
        changed_at: datetime,
    ) -> AppointmentResponse: ...
