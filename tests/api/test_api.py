import pytest
from fastapi.testclient import TestClient

from marketplace.main import create_app


@pytest.fixture
def client(db_manager):
    return TestClient(create_app(db_manager))


def headers(actor):
    return {"X-User-Id": actor.user_id, "X-User-Role": actor.role.value}


def test_root(client):
    assert client.get("/").status_code == 200
    assert client.get("/health").json()["status"] == "healthy"


def test_missing_identity(client, listing):
    response = client.post(f"/api/v1/properties/{listing.id}/offers", json={"amount": 1000})
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_create_and_fetch_property(client, seller, buyer):
    response = client.post(
        "/api/v1/properties",
        json={"title": "Riverside loft", "price": 320000, "status": "active", "city": "Porto"},
        headers=headers(seller),
    )
    assert response.status_code == 201
    property_id = response.json()["data"]["id"]

    fetched = client.get(f"/api/v1/properties/{property_id}", headers=headers(buyer))
    assert fetched.status_code == 200
    assert fetched.json()["data"]["slug"] == "riverside-loft"

    # The view is recorded in the background after the first response
    again = client.get(f"/api/v1/properties/{property_id}")
    assert again.json()["data"]["views_count"] == 1

    listed = client.get("/api/v1/properties", params={"status": "active"})
    assert [p["id"] for p in listed.json()["data"]] == [property_id]


def test_offer_flow(client, listing, seller, buyer):
    created = client.post(f"/api/v1/properties/{listing.id}/offers", json={"amount": 400000}, headers=headers(buyer))
    assert created.status_code == 201
    offer_id = created.json()["data"]["id"]

    duplicate = client.post(f"/api/v1/properties/{listing.id}/offers", json={"amount": 1}, headers=headers(buyer))
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["kind"] == "DuplicateActiveOffer"
    assert duplicate.json()["error"]["context"]["offer_id"] == offer_id

    countered = client.post(f"/api/v1/offers/{offer_id}/counter", json={"amount": 420000}, headers=headers(seller))
    assert countered.json()["data"]["status"] == "countered"

    forbidden = client.post(f"/api/v1/offers/{offer_id}/accept", headers=headers(buyer))
    assert forbidden.status_code == 403

    accepted = client.post(f"/api/v1/offers/{offer_id}/accept", headers=headers(seller))
    assert accepted.status_code == 200
    assert accepted.json()["data"]["status"] == "accepted"


def test_invalid_amount_maps_to_422(client, listing, buyer):
    response = client.post(f"/api/v1/properties/{listing.id}/offers", json={"amount": -1}, headers=headers(buyer))
    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "InvalidAmount"


def test_booking_conflict(client, listing, seller, buyer, other_buyer):
    first = client.post(
        f"/api/v1/properties/{listing.id}/bookings",
        json={"scheduled_date": "2030-01-10T10:00:00", "duration_minutes": 60},
        headers=headers(buyer),
    ).json()["data"]["id"]
    second = client.post(
        f"/api/v1/properties/{listing.id}/bookings",
        json={"scheduled_date": "2030-01-10T10:30:00Z", "duration_minutes": 60},
        headers=headers(other_buyer),
    ).json()["data"]["id"]

    assert client.post(f"/api/v1/bookings/{first}/approve", headers=headers(seller)).status_code == 200
    conflict = client.post(f"/api/v1/bookings/{second}/approve", headers=headers(seller))
    assert conflict.status_code == 409
    assert conflict.json()["error"]["context"]["conflicting_booking_id"] == first

    assert client.post(f"/api/v1/bookings/{second}/reschedule", headers=headers(seller)).status_code == 422


def test_review_and_favorite(client, listing, buyer):
    review = client.put(f"/api/v1/properties/{listing.id}/reviews", json={"rating": 4}, headers=headers(buyer))
    assert review.json()["data"]["summary"] == {"property_id": listing.id, "ratings_count": 1, "average_rating": 4.0}

    invalid = client.put(f"/api/v1/properties/{listing.id}/reviews", json={"rating": 9}, headers=headers(buyer))
    assert invalid.status_code == 422
    assert invalid.json()["error"]["kind"] == "InvalidRating"

    removed = client.delete(f"/api/v1/properties/{listing.id}/reviews", headers=headers(buyer))
    assert removed.json()["data"]["summary"]["ratings_count"] == 0

    assert client.post(f"/api/v1/properties/{listing.id}/favorite", headers=headers(buyer)).status_code == 201
    again = client.post(f"/api/v1/properties/{listing.id}/favorite", headers=headers(buyer))
    assert again.status_code == 409
    assert again.json()["error"]["kind"] == "AlreadyFavorited"
    assert client.delete(f"/api/v1/properties/{listing.id}/favorite", headers=headers(buyer)).json()["data"]["favorites_count"] == 0


def test_notifications(client, listing, seller, buyer):
    client.post(f"/api/v1/properties/{listing.id}/offers", json={"amount": 400000}, headers=headers(buyer))

    inbox = client.get("/api/v1/notifications", params={"unread_only": True}, headers=headers(seller)).json()["data"]
    assert [n["type"] for n in inbox] == ["new_offer"]

    read = client.post(f"/api/v1/notifications/{inbox[0]['id']}/read", headers=headers(seller))
    assert read.json()["data"]["is_read"] is True
    assert client.get("/api/v1/notifications", params={"unread_only": True}, headers=headers(seller)).json()["data"] == []


def test_delete_property_twice(client, listing, seller):
    assert client.delete(f"/api/v1/properties/{listing.id}", headers=headers(seller)).status_code == 200
    assert client.delete(f"/api/v1/properties/{listing.id}", headers=headers(seller)).status_code == 200
    assert client.get(f"/api/v1/properties/{listing.id}").status_code == 404


def test_unknown_role_header(client, listing, buyer):
    response = client.post(
        f"/api/v1/properties/{listing.id}/favorite",
        headers={"X-User-Id": buyer.user_id, "X-User-Role": "superuser"},
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Unknown role 'superuser'"
