"""Domain error taxonomy.

Every error carries a stable ``kind`` the presentation layer can key messages
on, and the HTTP status the API renders it with.
"""


class SoulPassError(Exception):
    """Base class for all errors raised by the core operations."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SoulPassError):
    """Malformed input; the caller can fix it and retry."""

    kind = "validation_error"
    status_code = 422


class NotFoundError(SoulPassError):
    kind = "not_found"
    status_code = 404


class ForbiddenError(SoulPassError):
    """The caller is not allowed to perform this transition (usually: not the organizer)."""

    kind = "forbidden"
    status_code = 403


class ConflictError(SoulPassError):
    """Duplicate RSVP request, or a stale version on an event edit."""

    kind = "conflict"
    status_code = 409


class PreconditionError(SoulPassError):
    """Transition attempted out of order, e.g. attendance before approval."""

    kind = "precondition_failed"
    status_code = 412


class CapacityExceededError(SoulPassError):
    kind = "capacity_exceeded"
    status_code = 409


class StoreTimeoutError(SoulPassError, TimeoutError):
    """The store did not answer before the caller's deadline. Nothing was written."""

    kind = "timeout"
    status_code = 504
