"""
Public availability endpoint.
"""

from datetime import datetime, timezone

import pytest

from pestbook.domain.bookings.schemas import BookingCreate
from pestbook.domain.bookings.service import BookingService


@pytest.fixture
def make_booking(db, customer, actor_for, pest_service):
    service = BookingService(db)
    actor = actor_for(customer)

    def _make_booking(start, end):
        return service.create_booking(
            actor,
            BookingCreate(
                servicePublicId=pest_service.public_id,
                startsAt=start,
                endsAt=end,
                address="12 Elm Street, Springfield",
            ),
        )

    return _make_booking


def utc(day, hour, minute=0):
    return datetime(2025, 3, day, hour, minute, tzinfo=timezone.utc)


def test_day_includes_booking(anon, make_booking):
    make_booking(utc(10, 14), utc(10, 15))

    response = anon.get("/bookings/availability", params={"date": "2025-03-10"})
    assert response.status_code == 200
    body = response.json()
    assert body["date"] == "2025-03-10"
    assert body["startUtc"].startswith("2025-03-10T00:00:00")
    assert body["endUtc"].startswith("2025-03-11T00:00:00")
    assert len(body["bookings"]) == 1
    slot = body["bookings"][0]
    assert slot["starts_at"].startswith("2025-03-10T14:00:00")
    assert slot["ends_at"].startswith("2025-03-10T15:00:00")
    assert set(slot) == {"starts_at", "ends_at", "status"}


def test_spanning_booking_is_returned(anon, make_booking):
    make_booking(utc(9, 20), utc(11, 2))
    body = anon.get("/bookings/availability", params={"date": "2025-03-10"}).json()
    assert len(body["bookings"]) == 1


def test_touching_boundaries_are_excluded(anon, make_booking):
    make_booking(utc(9, 22), utc(10, 0))
    make_booking(utc(11, 0), utc(11, 1))
    body = anon.get("/bookings/availability", params={"date": "2025-03-10"}).json()
    assert body["bookings"] == []


def test_terminal_bookings_do_not_block(anon, db, admin, actor_for, make_booking):
    booking = make_booking(utc(10, 14), utc(10, 15))
    BookingService(db).cancel(actor_for(admin), booking.public_id)
    body = anon.get("/bookings/availability", params={"date": "2025-03-10"}).json()
    assert body["bookings"] == []


def test_timezone_offset_moves_window(anon, make_booking):
    # 03:00Z on the 11th is still the 10th in UTC-8
    make_booking(utc(11, 3), utc(11, 4))

    utc_day = anon.get("/bookings/availability", params={"date": "2025-03-10"}).json()
    assert utc_day["bookings"] == []

    pacific = anon.get(
        "/bookings/availability", params={"date": "2025-03-10", "tzOffsetMinutes": 480}
    ).json()
    assert pacific["startUtc"].startswith("2025-03-10T08:00:00")
    assert len(pacific["bookings"]) == 1


@pytest.mark.parametrize(
    "params",
    [
        {"date": "2025-13-40"},
        {},
        {"date": "2025-03-10", "tzOffsetMinutes": 900},
        {"date": "9999-12-31"},
        {"date": "0001-01-01", "tzOffsetMinutes": -60},
    ],
)
def test_bad_input(anon, params):
    response = anon.get("/bookings/availability", params=params)
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"
