"""
Service catalog endpoints.
"""

import pytest


@pytest.fixture
def owner_client(login, superuser):
    return login(superuser)


NEW_SERVICE = {
    "title": "Termite Inspection",
    "description": "Full structure inspection with report",
    "duration_minutes": 90,
    "sort_order": 2,
}


def test_public_list_only_active(anon, db, pest_service):
    services = anon.get("/services").json()["services"]
    assert [s["public_id"] for s in services] == [pest_service.public_id]

    pest_service.is_active = False
    db.commit()
    assert anon.get("/services").json()["services"] == []


def test_owner_crud(owner_client, anon):
    created = owner_client.post("/admin/services", json=NEW_SERVICE)
    assert created.status_code == 201
    service = created.json()["service"]
    assert service["is_active"] is True
    assert service["duration_minutes"] == 90

    updated = owner_client.patch(
        f"/admin/services/{service['public_id']}", json={"duration_minutes": 45}
    )
    assert updated.status_code == 200
    assert updated.json()["service"]["duration_minutes"] == 45

    assert owner_client.delete(f"/admin/services/{service['public_id']}").status_code == 200
    assert anon.get("/services").json()["services"] == []


def test_empty_update_rejected(owner_client, pest_service):
    response = owner_client.patch(f"/admin/services/{pest_service.public_id}", json={})
    assert response.status_code == 422


def test_unknown_service(owner_client):
    response = owner_client.delete("/admin/services/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404


def test_admin_is_not_catalog_owner(login, admin):
    response = login(admin).post("/admin/services", json=NEW_SERVICE)
    assert response.status_code == 403


def test_booking_uses_new_service_duration(owner_client, login, customer):
    service = owner_client.post("/admin/services", json=NEW_SERVICE).json()["service"]
    response = login(customer).post(
        "/bookings",
        json={
            "servicePublicId": service["public_id"],
            "startsAt": "2025-03-10T14:00:00Z",
            "address": "12 Elm Street, Springfield",
        },
    )
    assert response.json()["booking"]["ends_at"].startswith("2025-03-10T15:30:00")
