"""Appointment status lifecycle."""

from clinic_scheduler.core.exceptions import InvalidStatusTransitionError
from clinic_scheduler.schemas.appointments import AppointmentStatus

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.CHECKED_IN,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.CHECKED_IN: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
        }
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Appointments in these statuses no longer hold their slot
RELEASED_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})


def is_terminal(status: AppointmentStatus) -> bool:
    """Check whether no further transition is possible."""
    return status in TERMINAL_STATUSES


def is_blocking(status: AppointmentStatus) -> bool:
    """Check whether an appointment in this status occupies its slot."""
    return status not in RELEASED_STATUSES


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Check whether ``current`` may move to ``target``."""
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """
    Validate a status change.

    Raises:
        InvalidStatusTransitionError: If the lifecycle forbids the change
    """
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current.value, target.value)
