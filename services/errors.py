"""
Error kinds returned by the booking engine.

Pure helpers raise these; the service layer catches them and hands them back
as the second item of a ``(result, error)`` pair so routes can render them.
"""


class BookingError(Exception):
    kind = "error"
    http_status = 500
    retryable = False

    def __init__(self, message: str, field: str = None, **details):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        if self.field:
            body["field"] = self.field
        body.update(self.details)
        if self.retryable:
            body["retryable"] = True
        return body


class ValidationError(BookingError):
    kind = "validation_error"
    http_status = 400


class InvalidTimeFormat(ValidationError):
    kind = "invalid_time_format"


class TimeOverflow(ValidationError):
    kind = "time_overflow"


class InvalidTransition(ValidationError):
    kind = "invalid_transition"
    http_status = 409


class ScheduleClosedError(BookingError):
    kind = "schedule_closed"
    http_status = 400


class ConflictError(BookingError):
    kind = "conflict"
    http_status = 409


class CancellationWindowExpired(BookingError):
    kind = "cancellation_window_expired"
    http_status = 403


class NotFound(BookingError):
    kind = "not_found"
    http_status = 404


class Forbidden(BookingError):
    kind = "forbidden"
    http_status = 403


class StoreUnavailable(BookingError):
    # the only kind a caller may retry (with backoff)
    kind = "store_unavailable"
    http_status = 503
    retryable = True


class DuplicateError(BookingError):
    kind = "duplicate"
    http_status = 409
