"""
Customer self-service booking endpoints and session handling.
"""

from datetime import timedelta

import pytest


@pytest.fixture
def customer_client(login, customer):
    return login(customer)


@pytest.fixture
def other_client(login, other_customer):
    return login(other_customer)


def book(client, service, starts_at="2025-03-10T14:00:00Z", **extra):
    body = {
        "servicePublicId": service.public_id,
        "startsAt": starts_at,
        "address": "12 Elm Street, Springfield",
        **extra,
    }
    return client.post("/bookings", json=body)


class TestCreate:
    def test_create_returns_pending_booking(self, customer_client, customer, pest_service):
        response = book(customer_client, pest_service)
        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["status"] == "pending"
        assert booking["starts_at"].startswith("2025-03-10T14:00:00")
        assert booking["ends_at"].startswith("2025-03-10T15:00:00")
        assert booking["bookee_kind"] == "customer"
        assert booking["bookee_public_id"] == customer.public_id
        assert booking["service_title"] == "General Pest Treatment"

    def test_conflict_is_distinct_from_validation(self, customer_client, pest_service):
        assert book(customer_client, pest_service).status_code == 201

        conflict = book(customer_client, pest_service, starts_at="2025-03-10T14:30:00Z")
        assert conflict.status_code == 409
        assert conflict.json() == {
            "ok": False,
            "code": "slot_unavailable",
            "detail": "Time slot unavailable",
        }

        invalid = book(customer_client, pest_service, address="")
        assert invalid.status_code == 422
        assert invalid.json()["code"] == "validation_error"

    def test_offset_timestamps_are_stored_as_instants(self, customer_client, pest_service):
        response = book(customer_client, pest_service, starts_at="2025-03-10T06:00:00-08:00")
        assert response.status_code == 201
        assert response.json()["booking"]["starts_at"].startswith("2025-03-10T14:00:00")

    def test_explicit_end(self, customer_client, pest_service):
        response = book(customer_client, pest_service, endsAt="2025-03-10T16:30:00Z")
        assert response.json()["booking"]["ends_at"].startswith("2025-03-10T16:30:00")

    def test_end_past_calendar_limit(self, customer_client, pest_service):
        response = book(customer_client, pest_service, starts_at="9999-12-31T23:30:00Z")
        assert response.status_code == 422
        assert response.json() == {
            "ok": False,
            "code": "validation_error",
            "detail": "Date out of range",
        }

    def test_unknown_service(self, customer_client):
        response = customer_client.post(
            "/bookings",
            json={
                "servicePublicId": "5f0c6d8e-1111-4a4a-9b9b-000000000000",
                "startsAt": "2025-03-10T14:00:00Z",
                "address": "12 Elm Street, Springfield",
            },
        )
        assert response.status_code == 404

    def test_worker_cannot_self_book(self, login, worker, pest_service):
        assert book(login(worker), pest_service).status_code == 403


class TestAuthentication:
    def test_missing_cookie(self, anon, pest_service):
        response = book(anon, pest_service)
        assert response.status_code == 401
        assert response.json()["code"] == "not_authenticated"

    def test_expired_session(self, login, customer, pest_service):
        client = login(customer, expires_in=timedelta(minutes=-5))
        response = book(client, pest_service)
        assert response.status_code == 401
        assert response.json()["detail"] == "Session expired"

    def test_unknown_session(self, pest_service):
        from fastapi.testclient import TestClient

        from pestbook.main import app

        client = TestClient(app, cookies={"sid": "not-a-session"})
        assert book(client, pest_service).status_code == 401


class TestOwnership:
    def test_cannot_cancel_someone_elses_booking(
        self, customer_client, other_client, pest_service
    ):
        booking_id = book(customer_client, pest_service).json()["booking"]["public_id"]

        response = other_client.patch(f"/bookings/{booking_id}/cancel")
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

        cancelled = customer_client.patch(f"/bookings/{booking_id}/cancel")
        assert cancelled.status_code == 200
        assert cancelled.json()["booking"]["status"] == "cancelled"
        assert cancelled.json()["booking"]["cancelled_at"] is not None

        # Slot is free again
        assert book(other_client, pest_service).status_code == 201

    def test_cannot_read_someone_elses_booking(self, customer_client, other_client, pest_service):
        booking_id = book(customer_client, pest_service).json()["booking"]["public_id"]
        assert customer_client.get(f"/bookings/{booking_id}").status_code == 200
        assert other_client.get(f"/bookings/{booking_id}").status_code == 403

    def test_my_bookings_split(self, customer_client, other_client, pest_service):
        first = book(customer_client, pest_service).json()["booking"]["public_id"]
        second = book(
            customer_client, pest_service, starts_at="2025-03-11T09:00:00Z"
        ).json()["booking"]["public_id"]
        book(other_client, pest_service, starts_at="2025-03-12T09:00:00Z")
        customer_client.patch(f"/bookings/{first}/cancel")

        body = customer_client.get("/bookings/me").json()
        assert [b["public_id"] for b in body["upcoming"]] == [second]
        assert [b["public_id"] for b in body["history"]] == [first]
