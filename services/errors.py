"""Error kinds raised by the scheduling services.

Every error carries a human readable ``message`` and the HTTP status an
outer layer would map it to. None of them are retried internally.
"""


class SchedulingError(Exception):
    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload.update(self.details)
        return payload


class ValidationError(SchedulingError):
    """Malformed date/time, out-of-range duration, bad customer fields."""

    status_code = 400


class Conflict(SchedulingError):
    """Window already exists for a date, or slot already booked."""

    status_code = 409


class NotFound(SchedulingError):
    status_code = 404


class Forbidden(SchedulingError):
    """Operation not allowed while live bookings depend on the record."""

    status_code = 403


class InvalidState(SchedulingError):
    """Booking status (or timing) does not allow the requested transition."""

    status_code = 400


class TooLateToCancel(InvalidState):
    pass


class ExhaustedSequence(SchedulingError):
    """No booking reference left for the current minute."""

    status_code = 503
