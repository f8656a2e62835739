"""
Unit tests for the booking status state machine.
"""

import pytest

from pestbook.domain.scheduling import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    BookingStatus,
    can_transition,
    ensure_transition,
    is_active,
)
from pestbook.errors import StateError


def test_active_and_terminal_partition_all_statuses():
    assert ACTIVE_STATUSES | TERMINAL_STATUSES == set(BookingStatus)
    assert not ACTIVE_STATUSES & TERMINAL_STATUSES


@pytest.mark.parametrize(
    "current,target",
    [
        ("pending", "accepted"),
        ("pending", "cancelled"),
        ("accepted", "assigned"),
        ("accepted", "cancelled"),
        ("assigned", "assigned"),
        ("assigned", "completed"),
        ("assigned", "cancelled"),
    ],
)
def test_legal_transitions(current, target):
    assert can_transition(current, target)
    assert ensure_transition(current, target) == BookingStatus(target)


@pytest.mark.parametrize(
    "current,target",
    [
        ("pending", "assigned"),
        ("pending", "completed"),
        ("accepted", "accepted"),
        ("accepted", "completed"),
        ("assigned", "accepted"),
    ],
)
def test_out_of_order_transitions_raise(current, target):
    assert not can_transition(current, target)
    with pytest.raises(StateError):
        ensure_transition(current, target)


@pytest.mark.parametrize("terminal", ["completed", "cancelled"])
@pytest.mark.parametrize("target", list(BookingStatus))
def test_terminal_states_are_closed(terminal, target):
    assert TRANSITIONS[BookingStatus(terminal)] == frozenset()
    with pytest.raises(StateError, match=f"already {terminal}"):
        ensure_transition(terminal, target)


def test_is_active():
    assert is_active("pending")
    assert is_active(BookingStatus.ASSIGNED)
    assert not is_active("cancelled")


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        ensure_transition("archived", "pending")
