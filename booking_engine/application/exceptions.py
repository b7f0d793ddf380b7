class BookingError(RuntimeError):
    """Base for every structured error the booking core returns to callers."""

    code = "booking_error"
    http_status = 400


class ValidationError(BookingError, ValueError):
    """Raised when input is malformed (non-positive duration, range outside any day, ...)."""

    code = "validation_error"
    http_status = 400


class IdempotencyKeyReused(ValidationError):
    """Raised when an idempotency key is replayed with a different request payload."""

    code = "idempotency_key_reused"
    http_status = 422


class NotFound(BookingError):
    code = "not_found"
    http_status = 404


class SlotUnavailable(BookingError):
    """Raised when the requested range is not one of the currently valid slots."""

    code = "slot_unavailable"
    http_status = 409


class ConflictError(BookingError):
    """Raised when the range overlaps an active appointment at commit time."""

    code = "conflict"
    http_status = 409


class TokenNotFound(BookingError):
    code = "token_not_found"
    http_status = 404


class TokenExpired(BookingError):
    code = "token_expired"
    http_status = 410


class CancellationWindowClosed(BookingError):
    code = "cancellation_window_closed"
    http_status = 409


class InvalidTransition(BookingError):
    """Raised when a lifecycle transition is not allowed from the current status."""

    code = "invalid_transition"
    http_status = 409


class StaleState(BookingError):
    """Raised when an optimistic version check fails; re-read before retrying."""

    code = "stale_state"
    http_status = 409


class LockTimeout(BookingError):
    """Raised when the per-resource serialization point exceeds its wait budget."""

    code = "lock_timeout"
    http_status = 503


class StorageError(BookingError):
    """Raised on infrastructure faults in the appointment store."""

    code = "storage_error"
    http_status = 503
