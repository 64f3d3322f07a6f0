"""Booking transactions: validate, check availability and conflicts, persist."""

from collections.abc import Callable
from datetime import UTC, date, datetime, tzinfo
from uuid import UUID, uuid4

import structlog

from clinic_scheduler.core.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    OutsideAvailabilityError,
    SchedulingConflictError,
    SchedulingError,
)
from clinic_scheduler.scheduling.availability import AvailabilityResolver
from clinic_scheduler.scheduling.conflicts import ConflictDetector, colliding_resources
from clinic_scheduler.scheduling.intervals import TimeInterval, subtract
from clinic_scheduler.scheduling.lifecycle import ensure_transition
from clinic_scheduler.scheduling.locks import LockManager
from clinic_scheduler.scheduling.store import SchedulingStore
from clinic_scheduler.schemas.appointments import AppointmentResponse, AppointmentStatus

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]
IdFactory = Callable[[], UUID]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


class BookingManager:
    """
    Coordinates the booking pipeline as one atomic unit per doctor and room.

    Every write runs inside the exclusion scope of the doctor and room it
    touches, so the conflict read and the insert cannot interleave with
    another booking for the same resources. Bookings for unrelated doctors
    and rooms do not wait on each other.

    The clock and id factory are injected so runs are reproducible.
    """

    def __init__(
        self,
        store: SchedulingStore,
        locks: LockManager,
        *,
        tz: tzinfo = UTC,
        clock: Clock = utc_now,
        id_factory: IdFactory = uuid4,
    ):
        """Initialize manager with its collaborators."""
        self.store = store
        self.locks = locks
        self.clock = clock
        self.id_factory = id_factory
        self.availability = AvailabilityResolver(store, tz)
        self.conflicts = ConflictDetector(store)

    # ------------------------------------------------------------------
    # Booking pipeline
    # ------------------------------------------------------------------

    async def book_appointment(
        self,
        patient_id: UUID,
        doctor_id: UUID,
        clinic_id: UUID,
        room_id: UUID | None,
        start: datetime,
        end: datetime,
        created_by: UUID | None = None,
        notes: str | None = None,
    ) -> AppointmentResponse:
        """
        Book a new appointment.

        Args:
            patient_id: Patient being booked
            doctor_id: Doctor seeing the patient
            clinic_id: Clinic the appointment takes place at
            room_id: Room to reserve, if any
            start: Requested start
            end: Requested end
            created_by: User making the booking
            notes: Free-text notes

        Returns:
            Persisted appointment in ``scheduled`` status

        Raises:
            NotFoundError: If the patient, doctor, clinic or room does not exist
            InvalidIntervalError: If the span is empty, inverted or crosses midnight
            OutsideAvailabilityError: If no availability covers the span
            SchedulingConflictError: If the doctor or room is already booked
            ContentionTimeoutError: If the exclusion scope was not acquired in time
        """
        log = logger.bind(
            doctor_id=str(doctor_id),
            room_id=str(room_id) if room_id else None,
            start=start.isoformat(),
            end=end.isoformat(),
        )
        try:
            if await self.store.get_patient(patient_id) is None:
                raise NotFoundError("Patient not found")
            await self._resolve_references(doctor_id, clinic_id, room_id)
            interval = self.availability.localize(start, end)

            async with self.locks.scope(doctor_id, room_id):
                await self._ensure_available(doctor_id, clinic_id, interval)
                await self._ensure_no_conflicts(doctor_id, room_id, interval)

                now = self.clock()
                appointment = AppointmentResponse(
                    id=self.id_factory(),
                    patient_id=patient_id,
                    doctor_id=doctor_id,
                    clinic_id=clinic_id,
                    room_id=room_id,
                    scheduled_start=interval.start,
                    scheduled_end=interval.end,
                    status=AppointmentStatus.SCHEDULED,
                    created_by=created_by,
                    notes=notes,
                    created_at=now,
                    updated_at=now,
                )
                created = await self.store.insert_appointment(appointment)
        except SchedulingError as exc:
            log.info("booking_rejected", code=exc.code, reason=exc.message)
            raise

        log.info("appointment_booked", appointment_id=str(created.id))
        return created

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        start: datetime,
        end: datetime,
        room_id: UUID | None = None,
    ) -> AppointmentResponse:
        """
        Move a scheduled appointment to a new span.

        The appointment keeps its current slot until the new one passes every
        check; a failed reschedule changes nothing.

        Args:
            appointment_id: Appointment to move
            start: New start
            end: New end
            room_id: New room; ``None`` keeps the current room

        Returns:
            Updated appointment

        Raises:
            NotFoundError: If the appointment or room does not exist
            InvalidStatusTransitionError: If the appointment is no longer scheduled
            InvalidIntervalError, OutsideAvailabilityError,
            SchedulingConflictError, ContentionTimeoutError: As for booking
        """
        log = logger.bind(appointment_id=str(appointment_id), start=start.isoformat())
        try:
            current = await self._get_appointment(appointment_id)
            target_room = room_id if room_id is not None else current.room_id
            await self._resolve_references(current.doctor_id, current.clinic_id, target_room)
            interval = self.availability.localize(start, end)

            async with self.locks.scope(current.doctor_id, target_room):
                current = await self._get_appointment(appointment_id)
                if current.status != AppointmentStatus.SCHEDULED:
                    raise InvalidStatusTransitionError(
                        current.status.value, AppointmentStatus.SCHEDULED.value
                    )
                await self._ensure_available(current.doctor_id, current.clinic_id, interval)
                await self._ensure_no_conflicts(
                    current.doctor_id, target_room, interval, exclude_appointment_id=current.id
                )
                updated = await self.store.update_appointment_span(
                    current.id,
                    interval.start,
                    interval.end,
                    target_room,
                    self.clock(),
                )
        except SchedulingError as exc:
            log.info("reschedule_rejected", code=exc.code, reason=exc.message)
            raise

        log.info("appointment_rescheduled")
        return updated

    # ------------------------------------------------------------------
    # Status lifecycle
    # ------------------------------------------------------------------

    async def transition_status(
        self,
        appointment_id: UUID,
        status: AppointmentStatus,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new status.

        Raises:
            NotFoundError: If the appointment does not exist
            InvalidStatusTransitionError: If the lifecycle forbids the change
        """
        current = await self._get_appointment(appointment_id)
        async with self.locks.scope(current.doctor_id, current.room_id):
            current = await self._get_appointment(appointment_id)
            ensure_transition(current.status, status)
            updated = await self.store.update_appointment_status(
                appointment_id, status, self.clock()
            )

        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current.status.value,
            new_status=status.value,
        )
        return updated

    async def check_in(self, appointment_id: UUID) -> AppointmentResponse:
        """Mark the patient as arrived."""
        return await self.transition_status(appointment_id, AppointmentStatus.CHECKED_IN)

    async def complete(self, appointment_id: UUID) -> AppointmentResponse:
        """Close a checked-in appointment."""
        return await self.transition_status(appointment_id, AppointmentStatus.COMPLETED)

    async def cancel(self, appointment_id: UUID) -> AppointmentResponse:
        """Cancel and release the slot."""
        return await self.transition_status(appointment_id, AppointmentStatus.CANCELLED)

    async def mark_no_show(self, appointment_id: UUID) -> AppointmentResponse:
        """Record that the patient did not arrive and release the slot."""
        return await self.transition_status(appointment_id, AppointmentStatus.NO_SHOW)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """Get an appointment or raise :class:`NotFoundError`."""
        return await self._get_appointment(appointment_id)

    async def bookable_intervals(
        self,
        doctor_id: UUID,
        clinic_id: UUID | None,
        from_date: date,
        to_date: date,
    ) -> list[TimeInterval]:
        """Availability windows for a doctor, ignoring existing bookings."""
        await self._resolve_references(doctor_id, clinic_id, None)
        return await self.availability.bookable_intervals(doctor_id, clinic_id, from_date, to_date)

    async def find_open_slots(
        self,
        doctor_id: UUID,
        clinic_id: UUID | None,
        from_date: date,
        to_date: date,
    ) -> list[TimeInterval]:
        """
        Availability windows minus the doctor's blocking appointments.

        Returns:
            Free intervals in chronological order
        """
        windows = await self.bookable_intervals(doctor_id, clinic_id, from_date, to_date)
        if not windows:
            return []

        booked = await self.store.list_blocking_appointments(
            doctor_id, None, windows[0].start, windows[-1].end
        )
        busy = [
            TimeInterval(a.scheduled_start, a.scheduled_end)
            for a in booked
            if a.doctor_id == doctor_id
        ]
        return [piece for window in windows for piece in subtract(window, busy)]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        appointment = await self.store.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    async def _resolve_references(
        self,
        doctor_id: UUID,
        clinic_id: UUID | None,
        room_id: UUID | None,
    ) -> None:
        if await self.store.get_doctor(doctor_id) is None:
            raise NotFoundError("Doctor not found")
        if clinic_id is not None and await self.store.get_clinic(clinic_id) is None:
            raise NotFoundError("Clinic not found")
        if room_id is not None:
            room = await self.store.get_room(room_id)
            if room is None or (clinic_id is not None and room.clinic_id != clinic_id):
                raise NotFoundError("Room not found in clinic")

    async def _ensure_available(
        self,
        doctor_id: UUID,
        clinic_id: UUID,
        interval: TimeInterval,
    ) -> None:
        if not await self.availability.is_within_availability(
            doctor_id, clinic_id, interval.start, interval.end
        ):
            raise OutsideAvailabilityError()

    async def _ensure_no_conflicts(
        self,
        doctor_id: UUID,
        room_id: UUID | None,
        interval: TimeInterval,
        exclude_appointment_id: UUID | None = None,
    ) -> None:
        conflicts = await self.conflicts.find_conflicting_appointments(
            doctor_id, room_id, interval.start, interval.end, exclude_appointment_id
        )
        if conflicts:
            raise SchedulingConflictError(
                [a.id for a in conflicts],
                colliding_resources(conflicts, doctor_id, room_id),
            )
