"""
Booking error taxonomy.

Each class maps to one HTTP status and a stable ``code`` so clients can tell
a taken slot (refresh availability) from a bad field (show the error) from a
stale view (refetch the booking) from a permission problem.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for every error the booking core surfaces to callers"""

    status_code = 400
    code = "booking_error"
    default_message = "Booking request failed"
    headers: Optional[dict] = None

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BookingError):
    """Malformed or ordering-violating input"""

    status_code = 422
    code = "validation_error"
    default_message = "Invalid booking request"


class ConflictError(BookingError):
    """The requested interval overlaps an active booking"""

    status_code = 409
    code = "slot_unavailable"
    default_message = "Time slot unavailable"


class StateError(BookingError):
    """Transition attempted from an illegal current status"""

    status_code = 409
    code = "invalid_state"
    default_message = "Booking is not in a state that allows this action"


class ForbiddenError(BookingError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class UnauthenticatedError(BookingError):
    status_code = 401
    code = "not_authenticated"
    default_message = "Not authenticated"


class NotFoundError(BookingError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class RateLimitedError(BookingError):
    status_code = 429
    code = "rate_limited"
    default_message = "Too many requests"

    def __init__(self, message: Optional[str] = None, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after
        self.headers = {"Retry-After": str(retry_after)}


class RateLimiterUnavailableError(BookingError):
    """The limiter could not decide; requests are refused rather than let through"""

    status_code = 503
    code = "rate_limiter_unavailable"
    default_message = "Rate limiting service temporarily unavailable"
