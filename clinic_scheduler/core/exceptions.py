"""Custom application exceptions."""

from uuid import UUID


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class ServiceUnavailableException(AppException):
    """Temporarily unavailable exception."""

    def __init__(self, message: str = "Service temporarily unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


# ============================================================================
# Scheduling errors
# ============================================================================


class SchedulingError(AppException):
    """
    Base class for booking rejections.

    A scheduling error never leaves partial state behind. Only errors with
    ``retryable`` set may be retried without changing the request.
    """

    code = "scheduling_error"
    retryable = False


class InvalidIntervalError(SchedulingError, ValidationException):
    """Requested span is empty, inverted, or crosses midnight."""

    code = "invalid_interval"

    def __init__(self, message: str = "Invalid appointment interval"):
        ValidationException.__init__(self, message)


class OutsideAvailabilityError(SchedulingError, ValidationException):
    """No availability rule covers the requested span."""

    code = "outside_availability"

    def __init__(self, message: str = "Requested time is outside doctor availability"):
        ValidationException.__init__(self, message)


class SchedulingConflictError(SchedulingError, ConflictException):
    """Requested span overlaps a blocking appointment for the doctor or room."""

    code = "scheduling_conflict"

    def __init__(
        self,
        conflicting_ids: list[UUID],
        resources: list[str] | None = None,
        message: str | None = None,
    ):
        self.conflicting_ids = conflicting_ids
        self.resources = resources or []
        if message is None:
            colliding = " and ".join(self.resources) or "schedule"
            message = f"Requested time overlaps an existing appointment ({colliding})"
        ConflictException.__init__(self, message)


class InvalidStatusTransitionError(SchedulingError, ConflictException):
    """Appointment status change is not allowed by the lifecycle."""

    code = "invalid_status_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        ConflictException.__init__(
            self, f"Cannot change appointment status from '{current}' to '{target}'"
        )


class ContentionTimeoutError(SchedulingError, ServiceUnavailableException):
    """Exclusion scope could not be acquired in time."""

    code = "contention_timeout"
    retryable = True

    def __init__(self, keys: list[str], timeout: float):
        self.keys = keys
        self.timeout = timeout
        ServiceUnavailableException.__init__(
            self,
            f"Could not acquire booking lock for {', '.join(keys)} within {timeout:g}s",
        )


class NotFoundError(SchedulingError, NotFoundException):
    """Referenced doctor, clinic, room or appointment does not exist."""

    code = "not_found"

    def __init__(self, message: str = "Resource not found"):
        NotFoundException.__init__(self, message)
