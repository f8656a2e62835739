"""Booking status state machine"""

from enum import Enum

from ...errors import StateError


class BookingStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that hold a time slot; must match the exclusion constraint predicate
ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.ACCEPTED, BookingStatus.ASSIGNED}
)
TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

# assigned -> assigned is a reassignment
TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.ACCEPTED, BookingStatus.CANCELLED}),
    BookingStatus.ACCEPTED: frozenset({BookingStatus.ASSIGNED, BookingStatus.CANCELLED}),
    BookingStatus.ASSIGNED: frozenset(
        {BookingStatus.ASSIGNED, BookingStatus.COMPLETED, BookingStatus.CANCELLED}
    ),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

_REJECTION_MESSAGES = {
    BookingStatus.ACCEPTED: "Booking is not pending",
    BookingStatus.ASSIGNED: "Booking must be accepted first",
    BookingStatus.COMPLETED: "Booking must be assigned first",
    BookingStatus.CANCELLED: "Booking is already closed",
}


def is_active(status) -> bool:
    return BookingStatus(status) in ACTIVE_STATUSES


def can_transition(current, target) -> bool:
    return BookingStatus(target) in TRANSITIONS[BookingStatus(current)]


def ensure_transition(current, target) -> BookingStatus:
    """Return the target status or raise StateError if the move is illegal."""
    current = BookingStatus(current)
    target = BookingStatus(target)
    if target not in TRANSITIONS[current]:
        if current in TERMINAL_STATUSES:
            raise StateError(f"Booking is already {current.value}")
        raise StateError(_REJECTION_MESSAGES.get(target))
    return target
