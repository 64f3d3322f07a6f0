"""Overlap detection against existing appointments."""

from datetime import datetime
from uuid import UUID

from clinic_scheduler.scheduling.intervals import TimeInterval
from clinic_scheduler.scheduling.lifecycle import is_blocking
from clinic_scheduler.scheduling.store import SchedulingStore
from clinic_scheduler.schemas.appointments import AppointmentResponse


class ConflictDetector:
    """Finds blocking appointments that collide with a candidate span."""

    def __init__(self, store: SchedulingStore):
        """Initialize detector with a store."""
        self.store = store

    async def find_conflicting_appointments(
        self,
        doctor_id: UUID,
        room_id: UUID | None,
        start: datetime,
        end: datetime,
        exclude_appointment_id: UUID | None = None,
    ) -> list[AppointmentResponse]:
        """
        Find appointments that would collide with ``[start, end)``.

        An appointment collides when it is still blocking (not cancelled or
        no-show), shares the doctor, or the room when one is given, and its
        span overlaps the candidate.

        Args:
            doctor_id: Candidate doctor
            room_id: Candidate room, if any
            start: Candidate start
            end: Candidate end
            exclude_appointment_id: Appointment being rescheduled

        Returns:
            Colliding appointments ordered by start
        """
        candidate = TimeInterval(start, end)
        rows = await self.store.list_blocking_appointments(doctor_id, room_id, start, end)

        conflicts = [
            appointment
            for appointment in rows
            if appointment.id != exclude_appointment_id
            and is_blocking(appointment.status)
            and (
                appointment.doctor_id == doctor_id
                or (room_id is not None and appointment.room_id == room_id)
            )
            and candidate.overlaps(
                TimeInterval(appointment.scheduled_start, appointment.scheduled_end)
            )
        ]
        return sorted(conflicts, key=lambda a: a.scheduled_start)

    async def find_conflicts(
        self,
        doctor_id: UUID,
        room_id: UUID | None,
        start: datetime,
        end: datetime,
        exclude_appointment_id: UUID | None = None,
    ) -> list[UUID]:
        """Return ids of colliding appointments; empty means the slot is free."""
        conflicts = await self.find_conflicting_appointments(
            doctor_id, room_id, start, end, exclude_appointment_id
        )
        return [appointment.id for appointment in conflicts]


def colliding_resources(
    conflicts: list[AppointmentResponse],
    doctor_id: UUID,
    room_id: UUID | None,
) -> list[str]:
    """Name which resources the conflicts were found on."""
    resources = []
    if any(a.doctor_id == doctor_id for a in conflicts):
        resources.append("doctor")
    if room_id is not None and any(a.room_id == room_id for a in conflicts):
        resources.append("room")
    return resources
