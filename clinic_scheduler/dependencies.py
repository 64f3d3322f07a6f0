"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.config import settings
from clinic_scheduler.core.redis_client import get_redis_client
from clinic_scheduler.database import get_db
from clinic_scheduler.scheduling.booking import BookingManager
from clinic_scheduler.scheduling.locks import LockManager, build_lock_manager
from clinic_scheduler.services.scheduling_store import SqlSchedulingStore


@lru_cache
def get_lock_manager() -> LockManager:
    """
    Get the process-wide lock manager.

    Locks must be shared by every request, so the instance is cached.
    """
    return build_lock_manager(
        settings.lock_backend,
        timeout=settings.lock_timeout_seconds,
        ttl_ms=settings.lock_ttl_ms,
        redis_client=get_redis_client() if settings.lock_backend == "redis" else None,
    )


async def get_booking_manager(
    db: Annotated[AsyncSession, Depends(get_db)],
    locks: Annotated[LockManager, Depends(get_lock_manager)],
) -> BookingManager:
    """
    Build a booking manager bound to the request's database session.

    Args:
        db: Database session
        locks: Shared lock manager

    Returns:
        Booking manager
    """
    return BookingManager(SqlSchedulingStore(db), locks, tz=settings.clinic_tz)


# Type aliases for dependency injection
Booking = Annotated[BookingManager, Depends(get_booking_manager)]
