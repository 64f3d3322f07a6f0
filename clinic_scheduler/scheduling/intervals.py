"""Half-open time intervals."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from clinic_scheduler.core.exceptions import InvalidIntervalError


def _instant(value: datetime) -> datetime:
    # Same-tzinfo comparisons use wall time and ignore fold
    return value.astimezone(UTC) if value.tzinfo is not None else value


@dataclass(frozen=True, order=True)
class TimeInterval:
    """
    Half-open interval ``[start, end)``.

    Adjacent intervals (``a.end == b.start``) do not overlap, so back-to-back
    appointments never conflict. Aware bounds are ordered by their UTC
    instants, so spans across a DST change compare by elapsed time.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise InvalidIntervalError("Start and end must both be naive or both be timezone-aware")
        if _instant(self.end) <= _instant(self.start):
            raise InvalidIntervalError("End time must be after start time")

    def overlaps(self, other: "TimeInterval") -> bool:
        """Check whether two intervals share any instant."""
        return _instant(self.start) < _instant(other.end) and _instant(other.start) < _instant(
            self.end
        )

    def contains(self, other: "TimeInterval") -> bool:
        """Check whether ``other`` lies entirely inside this interval."""
        return _instant(self.start) <= _instant(other.start) and _instant(
            other.end
        ) <= _instant(self.end)

    @property
    def is_single_day(self) -> bool:
        """Whether the interval starts and ends on the same calendar date."""
        return self.start.date() == self.end.date()


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """Check whether two intervals overlap."""
    return a.overlaps(b)


def merge(intervals: Iterable[TimeInterval]) -> list[TimeInterval]:
    """
    Union a collection of intervals.

    Args:
        intervals: Intervals in any order

    Returns:
        Sorted, disjoint intervals; overlapping and touching inputs are joined
    """
    merged: list[TimeInterval] = []
    for interval in sorted(intervals, key=lambda i: (_instant(i.start), _instant(i.end))):
        if merged and _instant(interval.start) <= _instant(merged[-1].end):
            last = merged[-1]
            if _instant(interval.end) > _instant(last.end):
                merged[-1] = TimeInterval(last.start, interval.end)
        else:
            merged.append(interval)
    return merged


def subtract(base: TimeInterval, holes: Iterable[TimeInterval]) -> list[TimeInterval]:
    """
    Remove ``holes`` from ``base``.

    Args:
        base: Interval to carve up
        holes: Intervals to remove; need not be sorted or inside ``base``

    Returns:
        Remaining pieces of ``base`` in order
    """
    remaining: list[TimeInterval] = []
    cursor = base.start
    for hole in merge(h for h in holes if h.overlaps(base)):
        if _instant(hole.start) > _instant(cursor):
            remaining.append(TimeInterval(cursor, hole.start))
        if _instant(hole.end) > _instant(cursor):
            cursor = hole.end
    if _instant(cursor) < _instant(base.end):
        remaining.append(TimeInterval(cursor, base.end))
    return remaining
