from collections.abc import AsyncGenerator
from datetime import UTC, time
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from clinic_scheduler.dependencies import get_booking_manager
from clinic_scheduler.main import app
from clinic_scheduler.scheduling.booking import BookingManager
from clinic_scheduler.scheduling.locks import LocalLockManager
from tests.factories import FIXED_NOW, MONDAY_DOW, SequentialIds
from tests.fakes import InMemorySchedulingStore


@pytest.fixture
def store() -> InMemorySchedulingStore:
    """Empty in-memory store."""
    return InMemorySchedulingStore()


@pytest.fixture
def clinic(store):
    return store.add_clinic()


@pytest.fixture
def room(store, clinic):
    return store.add_room(clinic.id, "EXAM-1")


@pytest.fixture
def doctor(store, clinic):
    """Doctor available Mondays 09:00-12:00 at the clinic."""
    doctor = store.add_doctor()
    store.add_weekly_rule(doctor.id, MONDAY_DOW, time(9, 0), time(12, 0), clinic_id=clinic.id)
    return doctor


@pytest.fixture
def patient_id(store) -> UUID:
    """Registered patient."""
    return store.add_patient().id


@pytest.fixture
def locks() -> LocalLockManager:
    return LocalLockManager(timeout=1.0)


@pytest.fixture
def manager(store, locks) -> BookingManager:
    """Booking manager with a fixed clock and sequential ids."""
    return BookingManager(
        store,
        locks,
        tz=UTC,
        clock=lambda: FIXED_NOW,
        id_factory=SequentialIds(),
    )


@pytest_asyncio.fixture
async def client(manager: BookingManager) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose booking manager uses the in-memory store."""

    async def override_get_booking_manager() -> BookingManager:
        return manager

    app.dependency_overrides[get_booking_manager] = override_get_booking_manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
