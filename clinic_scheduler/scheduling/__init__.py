"""Appointment scheduling core."""

from clinic_scheduler.scheduling.availability import AvailabilityResolver
from clinic_scheduler.scheduling.booking import BookingManager
from clinic_scheduler.scheduling.conflicts import ConflictDetector
from clinic_scheduler.scheduling.intervals import TimeInterval
from clinic_scheduler.scheduling.locks import (
    LocalLockManager,
    LockManager,
    RedisLockManager,
    build_lock_manager,
)
from clinic_scheduler.scheduling.store import SchedulingStore

__all__ = [
    "AvailabilityResolver",
    "BookingManager",
    "ConflictDetector",
    "LocalLockManager",
    "LockManager",
    "RedisLockManager",
    "SchedulingStore",
    "TimeInterval",
    "build_lock_manager",
]
