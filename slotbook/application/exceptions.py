class SchedulingError(Exception):
    """Base class for scheduling errors."""
    pass


class InvalidConfiguration(SchedulingError, ValueError):
    """Raised when an available weekly rule has start_time >= end_time."""
    pass


class UniqueConstraintViolation(SchedulingError):
    """Raised by a store when a write collides with an existing row."""
    pass


class PersistenceUnavailable(SchedulingError):
    """Raised when the backing store cannot be reached (network, timeout, 5xx)."""
    pass


class LockUnavailable(PersistenceUnavailable):
    """Raised when a provider lock could not be acquired in time."""
    pass


class AppointmentNotFound(SchedulingError):
    pass


class InvalidStatusTransition(SchedulingError):
    """Raised for a status change the appointment state machine does not allow."""
    pass


class StoreRequestRejected(SchedulingError):
    """Raised when the backing store refuses a request (4xx other than a conflict).

    Usually a schema mismatch, e.g. a column missing from a table that the
    migrations under supabase/migrations have not been applied to.
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code
