"""Tests for the booking pipeline."""

import asyncio
from datetime import UTC, datetime, time, timedelta
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

import pytest

from clinic_scheduler.core.exceptions import (
    ContentionTimeoutError,
    InvalidIntervalError,
    InvalidStatusTransitionError,
    NotFoundError,
    OutsideAvailabilityError,
    SchedulingConflictError,
)
from clinic_scheduler.scheduling.booking import BookingManager
from clinic_scheduler.scheduling.intervals import TimeInterval
from clinic_scheduler.scheduling.locks import LocalLockManager
from clinic_scheduler.schemas.appointments import AppointmentStatus
from tests.factories import FIXED_NOW, MONDAY, MONDAY_DOW, TUESDAY, at


@pytest.fixture
def book(manager, patient_id, doctor, clinic):
    """Book for the default patient, doctor and clinic."""

    async def _book(start: str, end: str, room_id: UUID | None = None, **kwargs):
        return await manager.book_appointment(
            kwargs.pop("patient_id", patient_id),
            kwargs.pop("doctor_id", doctor.id),
            kwargs.pop("clinic_id", clinic.id),
            room_id,
            at(MONDAY, start),
            at(MONDAY, end),
            **kwargs,
        )

    return _book


@pytest.mark.asyncio
async def test_book_appointment_success(book, store, room, patient_id):
    """A free slot inside availability is persisted as scheduled."""
    appointment = await book("09:30", "10:00", room_id=room.id, notes="Annual check-up")

    assert appointment.status == AppointmentStatus.SCHEDULED
    assert appointment.id == UUID(int=1)
    assert appointment.created_at == FIXED_NOW
    assert appointment.updated_at == FIXED_NOW
    assert appointment.patient_id == patient_id
    assert appointment.room_id == room.id
    assert appointment.notes == "Annual check-up"
    assert store.appointments[appointment.id] == appointment


@pytest.mark.asyncio
async def test_worked_example(book, store):
    """Accept, then overlap conflict, then outside availability."""
    first = await book("09:30", "10:00")

    with pytest.raises(SchedulingConflictError) as exc_info:
        await book("09:45", "10:15", patient_id=store.add_patient().id)
    assert exc_info.value.conflicting_ids == [first.id]
    assert exc_info.value.resources == ["doctor"]
    assert exc_info.value.status_code == 409
    assert not exc_info.value.retryable

    with pytest.raises(OutsideAvailabilityError):
        await book("12:00", "12:30")

    assert list(store.appointments) == [first.id]


@pytest.mark.asyncio
async def test_back_to_back_appointments_do_not_conflict(book, store):
    first = await book("09:30", "10:00")
    second = await book("10:00", "10:30", patient_id=store.add_patient().id)

    assert first.scheduled_end == second.scheduled_start


@pytest.mark.asyncio
async def test_room_conflict_across_doctors(book, store, clinic, room):
    """Two doctors cannot share a room at the same time."""
    other = store.add_doctor("Dr. Ben Osei")
    store.add_weekly_rule(other.id, MONDAY_DOW, time(9, 0), time(17, 0), clinic_id=clinic.id)
    first = await book("09:30", "10:00", room_id=room.id)

    with pytest.raises(SchedulingConflictError) as exc_info:
        await book("09:45", "10:15", room_id=room.id, doctor_id=other.id)

    assert exc_info.value.conflicting_ids == [first.id]
    assert exc_info.value.resources == ["room"]

    # Another room is fine
    second_room = store.add_room(clinic.id, "EXAM-2")
    assert await book("09:45", "10:15", room_id=second_room.id, doctor_id=other.id)


@pytest.mark.asyncio
async def test_cancel_releases_slot(book, manager, store):
    first = await book("09:30", "10:00")
    cancelled = await manager.cancel(first.id)

    assert cancelled.status == AppointmentStatus.CANCELLED
    assert cancelled.cancelled_at == FIXED_NOW

    rebooked = await book("09:30", "10:00", patient_id=store.add_patient().id)
    assert rebooked.status == AppointmentStatus.SCHEDULED


@pytest.mark.asyncio
async def test_no_show_releases_slot(book, manager, store):
    first = await book("09:30", "10:00")
    await manager.mark_no_show(first.id)

    assert await book("09:30", "10:00", patient_id=store.add_patient().id)


@pytest.mark.asyncio
async def test_completed_appointment_still_blocks(book, manager, store):
    first = await book("09:30", "10:00")
    await manager.check_in(first.id)
    await manager.complete(first.id)

    with pytest.raises(SchedulingConflictError):
        await book("09:30", "10:00", patient_id=store.add_patient().id)


@pytest.mark.asyncio
async def test_unknown_doctor(manager, patient_id, clinic):
    with pytest.raises(NotFoundError, match="Doctor"):
        await manager.book_appointment(
            patient_id, uuid4(), clinic.id, None, at(MONDAY, "09:30"), at(MONDAY, "10:00")
        )


@pytest.mark.asyncio
async def test_unknown_patient(manager, store, doctor, clinic):
    with pytest.raises(NotFoundError, match="Patient"):
        await manager.book_appointment(
            uuid4(), doctor.id, clinic.id, None, at(MONDAY, "09:30"), at(MONDAY, "10:00")
        )

    assert store.insert_calls == 0


@pytest.mark.asyncio
async def test_unknown_clinic(book):
    with pytest.raises(NotFoundError, match="Clinic"):
        await book("09:30", "10:00", clinic_id=uuid4())


@pytest.mark.asyncio
async def test_unknown_room(book):
    with pytest.raises(NotFoundError, match="Room"):
        await book("09:30", "10:00", room_id=uuid4())


@pytest.mark.asyncio
async def test_room_from_another_clinic(book, store):
    elsewhere = store.add_clinic("Uptown Clinic")
    foreign_room = store.add_room(elsewhere.id, "EXAM-1")

    with pytest.raises(NotFoundError):
        await book("09:30", "10:00", room_id=foreign_room.id)


@pytest.mark.asyncio
@pytest.mark.parametrize(("start", "end"), [("10:00", "10:00"), ("10:30", "10:00")])
async def test_invalid_interval(book, store, start, end):
    with pytest.raises(InvalidIntervalError):
        await book(start, end)

    assert store.insert_calls == 0


@pytest.mark.asyncio
async def test_cross_midnight_rejected(manager, patient_id, doctor, clinic):
    with pytest.raises(InvalidIntervalError):
        await manager.book_appointment(
            patient_id, doctor.id, clinic.id, None, at(MONDAY, "23:30"), at(TUESDAY, "00:30")
        )


@pytest.mark.asyncio
async def test_booking_in_clinic_timezone(store, locks, patient_id, doctor, clinic):
    """Aware request times are compared in clinic wall time."""
    new_york = ZoneInfo("America/New_York")
    manager = BookingManager(store, locks, tz=new_york, clock=lambda: FIXED_NOW)

    # 14:30 UTC is 09:30 EST
    appointment = await manager.book_appointment(
        patient_id, doctor.id, clinic.id, None, at(MONDAY, "14:30"), at(MONDAY, "15:00")
    )

    assert appointment.scheduled_start == at(MONDAY, "14:30")
    assert appointment.scheduled_start.tzinfo == new_york

    with pytest.raises(OutsideAvailabilityError):
        await manager.book_appointment(
            patient_id, doctor.id, clinic.id, None, at(MONDAY, "09:30"), at(MONDAY, "10:00")
        )


@pytest.mark.asyncio
async def test_booking_across_dst_fall_back(store, locks, patient_id, clinic):
    """A 45 minute visit spanning the repeated 01:00 hour is accepted."""
    new_york = ZoneInfo("America/New_York")
    doctor = store.add_doctor()
    # 2024-11-03 is a Sunday
    store.add_weekly_rule(doctor.id, 0, time(0, 0), time(23, 59), clinic_id=clinic.id)
    manager = BookingManager(store, locks, tz=new_york, clock=lambda: FIXED_NOW)
    start = datetime(2024, 11, 3, 5, 30, tzinfo=UTC)
    end = datetime(2024, 11, 3, 6, 15, tzinfo=UTC)

    appointment = await manager.book_appointment(patient_id, doctor.id, clinic.id, None, start, end)

    assert appointment.scheduled_start == start
    assert appointment.scheduled_end == end
    assert appointment.scheduled_end - start == timedelta(minutes=45)

    with pytest.raises(SchedulingConflictError):
        await manager.book_appointment(
            store.add_patient().id,
            doctor.id,
            clinic.id,
            None,
            datetime(2024, 11, 3, 6, 0, tzinfo=UTC),
            datetime(2024, 11, 3, 6, 30, tzinfo=UTC),
        )


# ============================================================================
# Rescheduling
# ============================================================================


@pytest.mark.asyncio
async def test_reschedule_moves_appointment(book, manager):
    appointment = await book("09:30", "10:00")

    moved = await manager.reschedule_appointment(
        appointment.id, at(MONDAY, "10:30"), at(MONDAY, "11:00")
    )

    assert moved.scheduled_start == at(MONDAY, "10:30")
    assert moved.scheduled_end == at(MONDAY, "11:00")
    assert moved.status == AppointmentStatus.SCHEDULED


@pytest.mark.asyncio
async def test_reschedule_overlapping_own_slot(book, manager):
    """An appointment never conflicts with itself."""
    appointment = await book("09:30", "10:00")

    moved = await manager.reschedule_appointment(
        appointment.id, at(MONDAY, "09:45"), at(MONDAY, "10:15")
    )

    assert moved.scheduled_start == at(MONDAY, "09:45")


@pytest.mark.asyncio
async def test_reschedule_keeps_room_by_default(book, manager, room):
    appointment = await book("09:30", "10:00", room_id=room.id)

    moved = await manager.reschedule_appointment(
        appointment.id, at(MONDAY, "11:00"), at(MONDAY, "11:30")
    )

    assert moved.room_id == room.id


@pytest.mark.asyncio
async def test_failed_reschedule_keeps_original_slot(book, manager, store):
    appointment = await book("09:30", "10:00")
    blocker = await book("10:30", "11:00", patient_id=store.add_patient().id)

    with pytest.raises(SchedulingConflictError) as exc_info:
        await manager.reschedule_appointment(
            appointment.id, at(MONDAY, "10:45"), at(MONDAY, "11:15")
        )
    assert exc_info.value.conflicting_ids == [blocker.id]

    with pytest.raises(OutsideAvailabilityError):
        await manager.reschedule_appointment(
            appointment.id, at(MONDAY, "11:45"), at(MONDAY, "12:15")
        )

    assert store.appointments[appointment.id] == appointment


@pytest.mark.asyncio
async def test_reschedule_requires_scheduled_status(book, manager):
    appointment = await book("09:30", "10:00")
    await manager.cancel(appointment.id)

    with pytest.raises(InvalidStatusTransitionError):
        await manager.reschedule_appointment(
            appointment.id, at(MONDAY, "10:30"), at(MONDAY, "11:00")
        )


@pytest.mark.asyncio
async def test_reschedule_unknown_appointment(manager):
    with pytest.raises(NotFoundError):
        await manager.reschedule_appointment(uuid4(), at(MONDAY, "10:30"), at(MONDAY, "11:00"))


# ============================================================================
# Status lifecycle
# ============================================================================


@pytest.mark.asyncio
async def test_full_visit_lifecycle(book, manager):
    appointment = await book("09:30", "10:00")

    checked_in = await manager.check_in(appointment.id)
    completed = await manager.complete(appointment.id)

    assert checked_in.status == AppointmentStatus.CHECKED_IN
    assert completed.status == AppointmentStatus.COMPLETED
    assert completed.cancelled_at is None


@pytest.mark.asyncio
async def test_terminal_status_is_final(book, manager):
    appointment = await book("09:30", "10:00")
    await manager.check_in(appointment.id)
    await manager.complete(appointment.id)

    with pytest.raises(InvalidStatusTransitionError) as exc_info:
        await manager.transition_status(appointment.id, AppointmentStatus.SCHEDULED)

    assert exc_info.value.current == "completed"
    assert exc_info.value.target == "scheduled"


@pytest.mark.asyncio
async def test_cannot_complete_without_check_in(book, manager, store):
    appointment = await book("09:30", "10:00")

    with pytest.raises(InvalidStatusTransitionError):
        await manager.complete(appointment.id)

    assert store.appointments[appointment.id].status == AppointmentStatus.SCHEDULED


@pytest.mark.asyncio
async def test_transition_unknown_appointment(manager):
    with pytest.raises(NotFoundError):
        await manager.cancel(uuid4())


# ============================================================================
# Concurrency
# ============================================================================


@pytest.mark.asyncio
async def test_concurrent_identical_bookings(manager, store, doctor, clinic):
    """Exactly one of two racing bookings for the same slot wins."""
    results = await asyncio.gather(
        *(
            manager.book_appointment(
                store.add_patient().id,
                doctor.id,
                clinic.id,
                None,
                at(MONDAY, "09:30"),
                at(MONDAY, "10:00"),
            )
            for _ in range(2)
        ),
        return_exceptions=True,
    )

    booked = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, Exception)]
    assert len(booked) == 1
    assert len(rejected) == 1
    assert isinstance(rejected[0], SchedulingConflictError)
    assert rejected[0].conflicting_ids == [booked[0].id]
    assert len(store.appointments) == 1


@pytest.mark.asyncio
async def test_concurrent_room_bookings_across_doctors(manager, store, clinic, room):
    doctors = [store.add_doctor(f"Dr. {n}") for n in ("Amal", "Bea", "Cyr")]
    for d in doctors:
        store.add_weekly_rule(d.id, MONDAY_DOW, time(9, 0), time(12, 0), clinic_id=clinic.id)

    results = await asyncio.gather(
        *(
            manager.book_appointment(
                store.add_patient().id,
                d.id,
                clinic.id,
                room.id,
                at(MONDAY, "09:30"),
                at(MONDAY, "10:00"),
            )
            for d in doctors
        ),
        return_exceptions=True,
    )

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert len(store.appointments) == 1


@pytest.mark.asyncio
async def test_unrelated_doctors_book_in_parallel(manager, store, clinic):
    doctors = [store.add_doctor(f"Dr. {n}") for n in ("Amal", "Bea")]
    for d in doctors:
        store.add_weekly_rule(d.id, MONDAY_DOW, time(9, 0), time(12, 0), clinic_id=clinic.id)

    results = await asyncio.gather(
        *(
            manager.book_appointment(
                store.add_patient().id,
                d.id,
                clinic.id,
                None,
                at(MONDAY, "09:30"),
                at(MONDAY, "10:00"),
            )
            for d in doctors
        )
    )

    assert {r.doctor_id for r in results} == {d.id for d in doctors}


@pytest.mark.asyncio
async def test_contention_timeout_persists_nothing(store, patient_id, doctor, clinic):
    locks = LocalLockManager(timeout=0.05)
    manager = BookingManager(store, locks, tz=UTC)

    async with locks.scope(doctor.id):
        with pytest.raises(ContentionTimeoutError) as exc_info:
            await manager.book_appointment(
                patient_id, doctor.id, clinic.id, None, at(MONDAY, "09:30"), at(MONDAY, "10:00")
            )

    assert exc_info.value.retryable
    assert store.insert_calls == 0
    assert locks.held_keys() == []


@pytest.mark.asyncio
async def test_cancelled_request_leaves_no_trace(manager, locks, store, patient_id, doctor, clinic):
    """A request cancelled while waiting for its scope writes nothing."""
    async with locks.scope(doctor.id):
        task = asyncio.create_task(
            manager.book_appointment(
                patient_id, doctor.id, clinic.id, None, at(MONDAY, "09:30"), at(MONDAY, "10:00")
            )
        )
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert store.insert_calls == 0
    assert locks.held_keys() == []

    # The slot is still free afterwards
    assert await manager.book_appointment(
        patient_id, doctor.id, clinic.id, None, at(MONDAY, "09:30"), at(MONDAY, "10:00")
    )


# ============================================================================
# Queries
# ============================================================================


@pytest.mark.asyncio
async def test_find_open_slots(book, manager, store, doctor, clinic):
    await book("09:30", "10:00")
    await book("11:00", "11:30", patient_id=store.add_patient().id)
    cancelled = await book("10:15", "10:45", patient_id=store.add_patient().id)
    await manager.cancel(cancelled.id)

    slots = await manager.find_open_slots(doctor.id, clinic.id, MONDAY, TUESDAY)

    assert slots == [
        TimeInterval(at(MONDAY, "09:00"), at(MONDAY, "09:30")),
        TimeInterval(at(MONDAY, "10:00"), at(MONDAY, "11:00")),
        TimeInterval(at(MONDAY, "11:30"), at(MONDAY, "12:00")),
    ]


@pytest.mark.asyncio
async def test_find_open_slots_without_bookings(manager, doctor, clinic):
    slots = await manager.find_open_slots(doctor.id, clinic.id, MONDAY, MONDAY)

    assert slots == [TimeInterval(at(MONDAY, "09:00"), at(MONDAY, "12:00"))]


@pytest.mark.asyncio
async def test_bookable_intervals_unknown_doctor(manager):
    with pytest.raises(NotFoundError):
        await manager.bookable_intervals(uuid4(), None, MONDAY, TUESDAY)


@pytest.mark.asyncio
async def test_get_appointment(book, manager):
    appointment = await book("09:30", "10:00")

    assert await manager.get_appointment(appointment.id) == appointment
    with pytest.raises(NotFoundError):
        await manager.get_appointment(uuid4())
