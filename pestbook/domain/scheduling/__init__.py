"""Scheduling primitives: time ranges and the booking status machine"""

from .status import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    BookingStatus,
    can_transition,
    ensure_transition,
    is_active,
)
from .time_range import TimeRange, as_utc, local_day_window, overlaps, to_utc

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "BookingStatus",
    "TimeRange",
    "as_utc",
    "can_transition",
    "ensure_transition",
    "is_active",
    "local_day_window",
    "overlaps",
    "to_utc",
]
