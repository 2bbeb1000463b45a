"""HTTP boundary tests: routing, auth, error mapping and the full booking flow."""

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from marketplace import main as main_module
from marketplace.auth import JWTAuthenticator
from marketplace.main import create_app
from marketplace.models import AgentStatus, BookingStatus

from tests.conftest import make_booking

SECRET = "test-secret"


def token(user_id, role):
    return jwt.encode({"id": user_id, "role": role}, SECRET, algorithm="HS256")


def auth(user_id, role):
    return {"Authorization": f"Bearer {token(user_id, role)}"}


@pytest.fixture
def client(engine, sender, embedder, cache):
    app = create_app(
        engine=engine,
        notification_sender=sender,
        embedding_provider=embedder,
        authenticator=JWTAuthenticator(SECRET),
        cache=cache,
    )
    return TestClient(app)


@pytest.fixture
def headers(world):
    return {
        "client": auth(world["client"].id, "CLIENT"),
        "provider": auth(world["provider"].id, "SERVICE_PROVIDER"),
        "agent": auth(world["agent"].id, "AGENT"),
    }


def checkout_body(service_id):
    return {
        "items": [
            {
                "serviceId": service_id,
                "bookingDate": "2024-01-10",
                "bookingTime": "10:00 AM",
                "extraTasks": [{"description": "wiring", "extraPrice": 20}],
            }
        ]
    }


class TestBookingFlow:
    def test_book_assign_pay(self, client, db, world, headers, sender):
        response = client.post("/client/bookings", json=checkout_body(world["service"].id), headers=headers["client"])
        assert response.status_code == 201
        [booking] = response.json()
        assert booking["totalPrice"] == 120.0
        assert booking["status"] == "PENDING"
        booking_id = booking["id"]

        response = client.post(
            f"/provider/bookings/{booking_id}/assign",
            json={"agentId": world["agent"].id},
            headers=headers["provider"],
        )
        assert response.status_code == 200
        assert response.json() == {"bookingId": booking_id, "agentName": "Bob", "agentPhone": "+15550001111"}

        db.expire_all()
        assert world["agent"].status == AgentStatus.BUSY

        dashboard = client.get("/agent/dashboard", headers=headers["agent"]).json()
        assert dashboard["stats"]["pending"] == 1
        assert dashboard["pendingJobs"][0]["status"] == "ASSIGNED"

        for _ in range(2):
            response = client.post(f"/agent/bookings/{booking_id}/pay", headers=headers["agent"])
            assert response.status_code == 200
            paid = response.json()
            assert paid["totalPrice"] == 120.0
            assert paid["paymentStatus"] == "PAID"
            assert paid["status"] == "COMPLETED"

        db.expire_all()
        assert world["agent"].status == AgentStatus.FREE
        assert world["client"].email in sender.recipients()

    def test_extra_task_endpoints(self, client, db, world, headers):
        booking = make_booking(db, world["client"], world["service"], status=BookingStatus.ASSIGNED, agent=world["agent"])

        added = client.post(
            f"/agent/bookings/{booking.id}/extra-tasks",
            json={"description": "outlet", "price": "12.50"},
            headers=headers["agent"],
        ).json()
        assert added["totalPrice"] == 112.5
        task_id = added["extraTasks"][0]["id"]

        removed = client.delete(f"/agent/bookings/{booking.id}/extra-tasks/{task_id}", headers=headers["agent"])
        assert removed.json()["totalPrice"] == 100.0

    def test_review_and_public_reviews(self, client, world, headers):
        body = {"organizationId": world["organization"].id, "serviceId": world["service"].id, "rating": 5}
        assert client.post("/client/reviews", json=body, headers=headers["client"]).status_code == 201
        assert client.post("/client/reviews", json=body, headers=headers["client"]).status_code == 409

        page = client.get(f"/public/organizations/{world['organization'].id}/reviews").json()
        assert page["total"] == 1
        assert page["items"][0]["rating"] == 5

        org = client.get(f"/public/organizations/{world['organization'].id}").json()
        assert org["rating"] == 5.0
        assert org["reviewCount"] == 1


class TestErrorMapping:
    def test_missing_token(self, client):
        response = client.get("/client/bookings")
        assert response.status_code == 401
        assert "detail" in response.json()

    def test_bad_token(self, client):
        response = client.get("/client/bookings", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_wrong_role(self, client, headers):
        assert client.get("/provider/agents", headers=headers["client"]).status_code == 403

    def test_not_found(self, client, headers):
        response = client.patch("/client/bookings/9999/cancel", headers=headers["client"])
        assert response.status_code == 404
        assert response.json() == {"detail": "Booking not found"}

    def test_invalid_transition_carries_statuses(self, client, db, world, headers):
        booking = make_booking(db, world["client"], world["service"], status=BookingStatus.COMPLETED, agent=world["agent"])
        response = client.patch(
            f"/agent/bookings/{booking.id}/status", json={"status": "in progress"}, headers=headers["agent"]
        )
        assert response.status_code == 400
        assert response.json()["from"] == "COMPLETED"
        assert response.json()["to"] == "IN_PROGRESS"

    def test_conflict(self, client, db, world, headers):
        b1 = make_booking(db, world["client"], world["service"])
        b2 = make_booking(db, world["client"], world["service"])
        body = {"agentId": world["agent"].id}
        assert client.post(f"/provider/bookings/{b1.id}/assign", json=body, headers=headers["provider"]).status_code == 200
        assert client.post(f"/provider/bookings/{b2.id}/assign", json=body, headers=headers["provider"]).status_code == 409

    def test_forbidden_cancel(self, client, db, world):
        booking = make_booking(db, world["client"], world["service"])
        response = client.patch(f"/client/bookings/{booking.id}/cancel", headers=auth(world["client"].id + 100, "CLIENT"))
        assert response.status_code == 403

    def test_body_validation_is_400(self, client, headers):
        response = client.post("/client/bookings", json={"nope": []}, headers=headers["client"])
        assert response.status_code == 400

    def test_invalid_state(self, client, db, world, headers):
        booking = make_booking(db, world["client"], world["service"], status=BookingStatus.IN_PROGRESS)
        response = client.patch(f"/client/bookings/{booking.id}/cancel", headers=headers["client"])
        assert response.status_code == 400


class TestPublicEndpoints:
    def test_search_without_auth(self, client, world):
        response = client.get("/public/search", params={"q": "electrical"})
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["name"] == "Electrical Repair"

    def test_categories(self, client, world):
        assert client.get("/public/categories").json() == {"categories": ["Electrical"]}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestAppFactory:
    def test_importing_main_builds_no_app(self):
        assert not hasattr(main_module, "app")

    def test_notifications_delivered_after_response(self, client, world, headers, sender):
        body = {"organizationId": world["organization"].id, "serviceId": world["service"].id, "rating": 5}
        response = client.post("/client/reviews", json=body, headers=headers["client"])

        assert response.status_code == 201
        assert sender.recipients() == {"owner@sparkle.test"}
