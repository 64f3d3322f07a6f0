"""Doctor availability resolution."""

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta, tzinfo
from uuid import UUID

import structlog

from clinic_scheduler.core.exceptions import InvalidIntervalError
from clinic_scheduler.scheduling.intervals import TimeInterval, merge
from clinic_scheduler.scheduling.store import SchedulingStore
from clinic_scheduler.schemas.availability import OneOffAvailability, RecurringAvailability

logger = structlog.get_logger(__name__)

Rule = RecurringAvailability | OneOffAvailability

# Longest date range expanded in one call
MAX_RANGE_DAYS = 92


def to_clinic_time(value: datetime, tz: tzinfo) -> datetime:
    """Interpret naive datetimes as clinic wall time and convert aware ones to it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def windows_on(rules: Iterable[Rule], day: date, tz: tzinfo) -> list[TimeInterval]:
    """
    Concrete availability for one calendar date.

    Rules are additive: the result is the union of every rule covering ``day``.
    """
    return merge(
        TimeInterval(
            datetime.combine(day, rule.start_time, tzinfo=tz),
            datetime.combine(day, rule.end_time, tzinfo=tz),
        )
        for rule in rules
        if rule.applies_on(day)
    )


class AvailabilityResolver:
    """Expands availability rules and checks requests against them."""

    def __init__(self, store: SchedulingStore, tz: tzinfo = UTC):
        """Initialize resolver with a store and the timezone rules are written in."""
        self.store = store
        self.tz = tz

    def localize(self, start: datetime, end: datetime) -> TimeInterval:
        """
        Build a single-day interval in clinic time.

        Raises:
            InvalidIntervalError: If the span is empty, inverted, or crosses midnight
        """
        interval = TimeInterval(to_clinic_time(start, self.tz), to_clinic_time(end, self.tz))
        if not interval.is_single_day:
            raise InvalidIntervalError("Appointments must start and end on the same day")
        return interval

    async def is_within_availability(
        self,
        doctor_id: UUID,
        clinic_id: UUID | None,
        start: datetime,
        end: datetime,
    ) -> bool:
        """
        Check whether a span is fully covered by the doctor's availability.

        A doctor without rules is closed, not unrestricted.

        Args:
            doctor_id: Doctor to check
            clinic_id: Restrict to rules for this clinic (plus unscoped rules)
            start: Requested start
            end: Requested end

        Returns:
            True if one block of the day's merged availability contains the span

        Raises:
            InvalidIntervalError: If the span is invalid or crosses midnight
        """
        interval = self.localize(start, end)
        rules = await self.store.list_availability_rules(doctor_id, clinic_id)
        windows = windows_on(rules, interval.start.date(), self.tz)
        return any(window.contains(interval) for window in windows)

    async def bookable_intervals(
        self,
        doctor_id: UUID,
        clinic_id: UUID | None,
        from_date: date,
        to_date: date,
    ) -> list[TimeInterval]:
        """
        Expand rules into concrete intervals for an inclusive date range.

        Ranges longer than ``MAX_RANGE_DAYS`` are rejected.

        Returns:
            Merged intervals in chronological order
        """
        if to_date < from_date:
            raise InvalidIntervalError("to_date must not be before from_date")
        if (to_date - from_date).days + 1 > MAX_RANGE_DAYS:
            raise InvalidIntervalError(f"Date range must not exceed {MAX_RANGE_DAYS} days")

        rules = await self.store.list_availability_rules(doctor_id, clinic_id)
        if not rules:
            logger.debug("no_availability_rules", doctor_id=str(doctor_id))
            return []

        intervals: list[TimeInterval] = []
        day = from_date
        while day <= to_date:
            intervals.extend(windows_on(rules, day, self.tz))
            day += timedelta(days=1)
        return intervals
