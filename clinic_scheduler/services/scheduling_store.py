"""SQLAlchemy Core implementation of the scheduling store."""

from datetime import datetime
from uuid import UUID

import structlog
from pydantic import ValidationError
from sqlalchemy import and_, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.core.exceptions import NotFoundError
from clinic_scheduler.models.appointments import appointments
from clinic_scheduler.models.availability import doctor_availabilities
from clinic_scheduler.models.clinics import clinics, rooms
from clinic_scheduler.models.doctors import doctor_specialties, doctors
from clinic_scheduler.models.patients import patients
from clinic_scheduler.scheduling.lifecycle import RELEASED_STATUSES
from clinic_scheduler.schemas.appointments import AppointmentResponse, AppointmentStatus
from clinic_scheduler.schemas.availability import (
    OneOffAvailability,
    RecurringAvailability,
    availability_rule_from_row,
)
from clinic_scheduler.schemas.clinics import ClinicResponse, RoomResponse
from clinic_scheduler.schemas.doctors import DoctorResponse
from clinic_scheduler.schemas.patients import PatientResponse

logger = structlog.get_logger(__name__)


class SqlSchedulingStore:
    """Scheduling store backed by the relational schema."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def get_patient(self, patient_id: UUID) -> PatientResponse | None:
        """Get patient by ID."""
        result = await self.db.execute(select(patients).where(patients.c.id == patient_id))
        patient = result.mappings().first()
        return PatientResponse.model_validate(dict(patient)) if patient else None

    async def get_doctor(self, doctor_id: UUID) -> DoctorResponse | None:
        """Get doctor with specialties."""
        result = await self.db.execute(select(doctors).where(doctors.c.id == doctor_id))
        doctor = result.mappings().first()
        if not doctor:
            return None

        specialties_result = await self.db.execute(
            select(doctor_specialties.c.specialty)
            .where(doctor_specialties.c.doctor_id == doctor_id)
            .order_by(doctor_specialties.c.specialty)
        )
        return DoctorResponse.model_validate(
            {**dict(doctor), "specialties": list(specialties_result.scalars().all())}
        )

    async def get_clinic(self, clinic_id: UUID) -> ClinicResponse | None:
        """Get clinic by ID."""
        result = await self.db.execute(select(clinics).where(clinics.c.id == clinic_id))
        clinic = result.mappings().first()
        return ClinicResponse.model_validate(dict(clinic)) if clinic else None

    async def get_room(self, room_id: UUID) -> RoomResponse | None:
        """Get room by ID."""
        result = await self.db.execute(select(rooms).where(rooms.c.id == room_id))
        room = result.mappings().first()
        return RoomResponse.model_validate(dict(room)) if room else None

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse | None:
        """Get appointment by ID."""
        result = await self.db.execute(
            select(appointments).where(appointments.c.id == appointment_id)
        )
        row = result.mappings().first()
        return AppointmentResponse.model_validate(dict(row)) if row else None

    async def list_availability_rules(
        self,
        doctor_id: UUID,
        clinic_id: UUID | None = None,
    ) -> list[RecurringAvailability | OneOffAvailability]:
        """
        Get availability rules for a doctor.

        Args:
            doctor_id: Doctor ID
            clinic_id: If given, keep rules for this clinic and rules with no clinic

        Returns:
            Parsed rules; malformed rows are skipped with a warning
        """
        conditions = [doctor_availabilities.c.doctor_id == doctor_id]
        if clinic_id is not None:
            conditions.append(
                or_(
                    doctor_availabilities.c.clinic_id == clinic_id,
                    doctor_availabilities.c.clinic_id.is_(None),
                )
            )

        result = await self.db.execute(select(doctor_availabilities).where(and_(*conditions)))

        rules: list[RecurringAvailability | OneOffAvailability] = []
        for row in result.mappings().all():
            try:
                rules.append(availability_rule_from_row(dict(row)))
            except ValidationError as e:
                logger.warning(
                    "availability_rule_skipped",
                    rule_id=str(row["id"]),
                    error=str(e),
                )
        return rules

    async def list_blocking_appointments(
        self,
        doctor_id: UUID,
        room_id: UUID | None,
        start: datetime,
        end: datetime,
    ) -> list[AppointmentResponse]:
        """
        Get appointments holding the doctor or room during ``[start, end)``.

        Uses the half-open overlap test ``existing.start < end AND start <
        existing.end`` against the doctor/room time indexes.
        """
        resource = appointments.c.doctor_id == doctor_id
        if room_id is not None:
            resource = or_(resource, appointments.c.room_id == room_id)

        stmt = (
            select(appointments)
            .where(
                and_(
                    resource,
                    appointments.c.status.not_in([s.value for s in RELEASED_STATUSES]),
                    appointments.c.scheduled_start < end,
                    appointments.c.scheduled_end > start,
                )
            )
            .order_by(appointments.c.scheduled_start)
        )

        result = await self.db.execute(stmt)
        return [AppointmentResponse.model_validate(dict(row)) for row in result.mappings().all()]

    async def insert_appointment(self, appointment: AppointmentResponse) -> AppointmentResponse:
        """Insert a new appointment row."""
        values = appointment.model_dump()
        values["status"] = appointment.status.value

        stmt = insert(appointments).values(**values).returning(appointments)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        return AppointmentResponse.model_validate(dict(row))

    async def update_appointment_status(
        self,
        appointment_id: UUID,
        status: AppointmentStatus,
        changed_at: datetime,
    ) -> AppointmentResponse:
        """Update appointment status, stamping ``cancelled_at`` on cancellation."""
        update_values: dict = {
            "status": status.value,
            "updated_at": changed_at,
        }
        if status == AppointmentStatus.CANCELLED:
            update_values["cancelled_at"] = changed_at

        return await self._update(appointment_id, update_values)

    async def update_appointment_span(
        self,
        appointment_id: UUID,
        start: datetime,
        end: datetime,
        room_id: UUID | None,
        changed_at: datetime,
    ) -> AppointmentResponse:
        """Move an appointment to a new span and room in one statement."""
        return await self._update(
            appointment_id,
            {
                "scheduled_start": start,
                "scheduled_end": end,
                "room_id": room_id,
                "updated_at": changed_at,
            },
        )

    async def _update(self, appointment_id: UUID, values: dict) -> AppointmentResponse:
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values)
            .returning(appointments)
        )

        result = await self.db.execute(stmt)
        row = result.mappings().first()
        if not row:
            await self.db.rollback()
            raise NotFoundError("Appointment not found")

        await self.db.commit()
        return AppointmentResponse.model_validate(dict(row))
