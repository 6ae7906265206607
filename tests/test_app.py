"""Tests for the HTTP API."""

from datetime import timedelta

import jwt
import pytest

from shiptrack.models import utcnow
from shiptrack.web import create_app


def _create(client, auth_headers, payload):
    response = client.post("/admin/api/shipments", json=payload, headers=auth_headers)
    assert response.status_code == 201
    return response.get_json()["data"]


class TestHealthAndHeaders:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json() == {"status": "healthy"}

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-XSS-Protection"] == "1; mode=block"

    def test_unknown_route(self, client):
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "message": "Route not found"}

    def test_unexpected_error_is_masked(self, app, client, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("database on fire")

        monkeypatch.setattr(app.service, "track", explode)
        response = client.get("/track/TRANS1")

        assert response.status_code == 500
        assert response.get_json() == {"success": False, "message": "Something went wrong!"}


class TestLogin:

    def test_login_success_sets_cookie(self, client, settings):
        response = client.post("/admin/login", json={"username": "admin", "password": "s3cret"})

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["user"] == {"username": "admin"}
        claims = jwt.decode(body["token"], "test-secret", algorithms=["HS256"])
        assert claims["username"] == "admin"
        assert claims["authenticated"] is True

        cookie = response.headers["Set-Cookie"]
        assert cookie.startswith("token=")
        assert "HttpOnly" in cookie
        assert "SameSite=Lax" in cookie

    def test_wrong_password(self, client):
        response = client.post("/admin/login", json={"username": "admin", "password": "nope"})

        assert response.status_code == 401
        assert response.get_json() == {"success": False, "message": "Invalid credentials"}

    @pytest.mark.parametrize("payload", [{}, {"username": "admin"}, {"password": "s3cret"}])
    def test_missing_fields(self, client, payload):
        response = client.post("/admin/login", json=payload)
        assert response.status_code == 400

    def test_cookie_authenticates_follow_up_requests(self, client):
        client.post("/admin/login", json={"username": "admin", "password": "s3cret"})

        assert client.get("/admin/api/shipments").status_code == 200
        assert client.get("/admin/check-auth").get_json() == {
            "authenticated": True,
            "user": {"username": "admin"},
        }

    def test_logout_clears_cookie(self, client):
        client.post("/admin/login", json={"username": "admin", "password": "s3cret"})
        response = client.post("/admin/logout")

        assert response.get_json()["success"] is True
        assert client.get("/admin/api/shipments").status_code == 401

    def test_login_rate_limit(self, settings, store, notifier):
        settings.rate_limit.enabled = True
        settings.rate_limit.login = "2 per minute"
        client = create_app(settings, store=store, notifier=notifier).test_client()

        codes = [
            client.post("/admin/login", json={"username": "admin", "password": "nope"}).status_code
            for _ in range(3)
        ]

        assert codes == [401, 401, 429]


class TestAuthGate:

    def test_missing_token(self, client):
        response = client.get("/admin/api/shipments")

        assert response.status_code == 401
        assert response.get_json()["message"] == "Authentication required"

    def test_bad_token(self, client):
        response = client.get("/admin/api/shipments", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid token"

    def test_expired_token(self, client):
        token = jwt.encode(
            {"username": "admin", "authenticated": True, "exp": utcnow() - timedelta(minutes=1)},
            "test-secret",
            algorithm="HS256",
        )
        response = client.get("/admin/api/shipments", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid token"

    def test_token_signed_with_other_key(self, client):
        token = jwt.encode({"username": "admin", "authenticated": True}, "other", algorithm="HS256")
        response = client.get("/admin/api/shipments", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_check_auth_anonymous(self, client):
        response = client.get("/admin/check-auth")

        assert response.status_code == 200
        assert response.get_json() == {"authenticated": False}

    def test_admin_redirects(self, client, auth_headers):
        assert client.get("/admin").headers["Location"].endswith("/admin/login")
        assert client.get("/admin", headers=auth_headers).headers["Location"].endswith("/admin/dashboard")

    def test_login_page_is_public(self, client):
        response = client.get("/admin/login")

        assert response.status_code == 200
        assert b"Admin Login" in response.data


class TestShipmentRoutes:

    def test_create_and_get(self, client, auth_headers, shipment_payload):
        created = _create(client, auth_headers, shipment_payload)

        assert created["trackingID"].startswith("TRANS")
        assert created["receiver"]["email"] == "kwame@example.com"

        response = client.get(f"/admin/api/shipments/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()["data"]["trackingID"] == created["trackingID"]

    def test_create_invalid_payload(self, client, auth_headers, shipment_payload):
        shipment_payload["receiver"]["email"] = "broken"
        response = client.post("/admin/api/shipments", json=shipment_payload, headers=auth_headers)

        assert response.status_code == 400
        body = response.get_json()
        assert body["success"] is False
        assert body["field"] == "receiver.email"

    def test_create_requires_json_object(self, client, auth_headers):
        response = client.post("/admin/api/shipments", data="nope", headers=auth_headers)
        assert response.status_code == 400

    def test_list_with_filter(self, client, auth_headers):
        _create(client, auth_headers, {})
        _create(client, auth_headers, {"status": "processing"})

        all_items = client.get("/admin/api/shipments", headers=auth_headers).get_json()["data"]
        processing = client.get("/admin/api/shipments?status=processing", headers=auth_headers).get_json()["data"]

        assert len(all_items) == 2
        assert [s["status"] for s in processing] == ["processing"]

    def test_list_unknown_status_filter(self, client, auth_headers):
        response = client.get("/admin/api/shipments?status=lost", headers=auth_headers)
        assert response.status_code == 400

    def test_get_missing(self, client, auth_headers):
        response = client.get("/admin/api/shipments/missing", headers=auth_headers)

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "message": "Shipment not found"}

    def test_update_status(self, client, auth_headers, shipment_payload, mock_provider):
        created = _create(client, auth_headers, shipment_payload)
        mock_provider.sent.clear()

        response = client.put(
            f"/admin/api/shipments/{created['id']}",
            json={"status": "in-transit", "currentLocation": "Cotonou"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["status"] == "in-transit"
        assert data["trackingHistory"][-1]["location"] == "Cotonou"
        assert len(mock_provider.sent) == 1

    def test_update_invalid_transition(self, client, auth_headers):
        created = _create(client, auth_headers, {})

        response = client.put(
            f"/admin/api/shipments/{created['id']}",
            json={"status": "delivered"},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.get_json()["message"] == "Cannot change status from 'pending' to 'delivered'"

    def test_location_update(self, client, auth_headers):
        created = _create(client, auth_headers, {})

        response = client.post(
            f"/admin/api/shipments/{created['id']}/location",
            json={"lat": 5.6, "lng": -0.2, "locationName": "Accra"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["currentLocation"] == {"name": "Accra", "coordinates": {"lat": 5.6, "lng": -0.2}}
        assert data["trackingHistory"][-1]["notes"] == "Location updated"

    def test_location_update_rejects_strings(self, client, auth_headers):
        created = _create(client, auth_headers, {})

        response = client.post(
            f"/admin/api/shipments/{created['id']}/location",
            json={"lat": "5.6", "lng": -0.2},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.get_json()["message"] == "lat and lng are required numbers"

    @pytest.mark.parametrize("estimated", [1e20, {"seconds": 1e20}, "next week"])
    def test_create_rejects_unusable_delivery_date(self, client, auth_headers, estimated):
        response = client.post(
            "/admin/api/shipments", json={"estimatedDeliveryDate": estimated}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.get_json()["field"] == "estimatedDeliveryDate"

    def test_update_rejects_out_of_range_delivery_date(self, client, auth_headers):
        created = _create(client, auth_headers, {})

        response = client.put(
            f"/admin/api/shipments/{created['id']}",
            json={"estimatedDeliveryDate": -1e20},
            headers=auth_headers,
        )

        assert response.status_code == 400

    def test_create_rejects_non_finite_coordinates(self, client, auth_headers):
        response = client.post(
            "/admin/api/shipments",
            json={"origin": {"city": "Lagos", "coordinates": {"lat": "nan", "lng": "inf"}}},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.get_json()["field"] == "origin.coordinates.lat"
        assert client.get("/admin/api/shipments", headers=auth_headers).get_json()["data"] == []

    @pytest.mark.parametrize("body", ['{"lat": NaN, "lng": 3.3}', '{"lat": 6.5, "lng": Infinity}'])
    def test_location_update_rejects_non_finite_literals(self, client, auth_headers, body):
        created = _create(client, auth_headers, {})

        response = client.post(
            f"/admin/api/shipments/{created['id']}/location",
            data=body,
            content_type="application/json",
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.get_json()["message"] == "lat and lng are required numbers"
        shipment = client.get(f"/admin/api/shipments/{created['id']}", headers=auth_headers).get_json()["data"]
        assert len(shipment["trackingHistory"]) == 1

    def test_delete(self, client, auth_headers):
        created = _create(client, auth_headers, {})

        response = client.delete(f"/admin/api/shipments/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert client.delete(f"/admin/api/shipments/{created['id']}", headers=auth_headers).status_code == 404


class TestPublicTracking:

    def test_track(self, client, auth_headers, shipment_payload):
        created = _create(client, auth_headers, shipment_payload)

        response = client.get(f"/track/{created['trackingID']}")

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["trackingID"] == created["trackingID"]
        assert data["receiver"] == {"name": "Kwame Mensah"}
        assert data["sender"] == {"name": "Ada Obi"}
        assert "createdAt" not in data
        assert data["trackingHistory"][0]["notes"] == "Shipment created"

    def test_track_unknown(self, client):
        response = client.get("/track/TRANSNOPE")

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "message": "Tracking ID not found"}

    def test_track_allows_any_origin(self, client, auth_headers):
        created = _create(client, auth_headers, {})

        response = client.get(f"/track/{created['trackingID']}", headers={"Origin": "https://shop.example.org"})

        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_admin_cors_allow_list(self, client, auth_headers):
        allowed = client.get("/admin/check-auth", headers={"Origin": "http://localhost:3000"})
        denied = client.get("/admin/check-auth", headers={"Origin": "https://evil.example.org"})

        assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
        assert allowed.headers["Access-Control-Allow-Credentials"] == "true"
        assert "Access-Control-Allow-Origin" not in denied.headers


class TestDashboard:

    def test_summary(self, client, auth_headers):
        _create(client, auth_headers, {})

        response = client.get("/admin/api/dashboard/summary", headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["total"] == 1
        assert data["byStatus"]["pending"] == 1

    def test_dashboard_page(self, client, auth_headers, shipment_payload):
        created = _create(client, auth_headers, shipment_payload)

        response = client.get("/admin/dashboard", headers=auth_headers)

        assert response.status_code == 200
        assert created["trackingID"].encode() in response.data
        assert b"Lagos: Shipment created" in response.data

    def test_dashboard_requires_auth(self, client):
        assert client.get("/admin/dashboard").status_code == 401


class TestTestEmail:

    def test_send(self, client, auth_headers, mock_provider):
        response = client.post("/admin/test-email", json={"to": "ops@example.com"}, headers=auth_headers)

        assert response.status_code == 200
        body = response.get_json()
        assert body["provider"] == "mock"
        assert mock_provider.sent[0].recipient == "ops@example.com"

    def test_requires_recipient(self, client, auth_headers):
        response = client.post("/admin/test-email", json={}, headers=auth_headers)
        assert response.status_code == 400

    def test_failure_is_reported(self, client, auth_headers, mock_provider):
        mock_provider.fail_with = "relay down"

        response = client.post("/admin/test-email", json={"to": "ops@example.com"}, headers=auth_headers)

        assert response.status_code == 502
        body = response.get_json()
        assert body["success"] is False
        assert "relay down" in body["error"]
