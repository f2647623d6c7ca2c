"""Error types raised by the conflict engine."""


class SchedulingError(Exception):
    """Base class for conflict engine errors."""


class InvalidBookingError(SchedulingError, ValueError):
    """Malformed interval, empty participant set or bad booking input."""


class BookingNotFoundError(InvalidBookingError):
    """Reschedule or cancel referenced a booking the store does not know."""


class CalendarNotConfiguredError(SchedulingError):
    """External calendar credentials are missing."""


class CalendarSyncError(SchedulingError):
    """The external calendar API rejected or failed a request."""
