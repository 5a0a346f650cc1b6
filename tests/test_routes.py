# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Endpoint tests running the full application over the in-memory store.
"""

import json
import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock, patch

from hemolink.app import create_app
from hemolink.models.entities import GeoPoint
from hemolink.services.auth import AuthService
from hemolink.services.geocoding import Geocoder, GeocodeResult
from hemolink.services.notifications import MongoNotificationGateway

SECRET = "test-secret"


@pytest.fixture
def geocoder():
    geocoder = Mock(spec=Geocoder)
    geocoder.require_geocode.return_value = GeocodeResult(location=GeoPoint.from_lng_lat(0.0, 0.0))
    return geocoder


@pytest.fixture
def app(store, geocoder):
    app = create_app(
        mongodb_service=store,
        notification_gateway=MongoNotificationGateway(store),
        auth_service=AuthService(secret=SECRET),
        geocoder=geocoder,
        config_overrides={"TESTING": True}
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    service = AuthService(secret=SECRET)

    def _auth_headers(user_id, role):
        return {"Authorization": f"Bearer {service.generate_access_token(user_id, role)}"}
    return _auth_headers


@pytest.fixture
def world(make_user, make_hospital, make_request):
    admin_id = make_user(role="hospital_admin", location=None)
    recipient_id = make_user(role="recipient", location=None)
    donor_id = make_user(location=(0.05, 0.0))
    hospital_id = make_hospital(admins=[admin_id])
    request_id = make_request(recipient_id, hospital_id)
    return {
        "admin_id": admin_id,
        "recipient_id": recipient_id,
        "donor_id": donor_id,
        "hospital_id": hospital_id,
        "request_id": request_id,
    }


def future(days=30):
    return (datetime.utcnow() + timedelta(days=days)).isoformat()


class TestAuthentication:

    def test_missing_token(self, client, world):
        response = client.get(f"/api/requests/{world['request_id']}")

        assert response.status_code == 401
        data = json.loads(response.data)
        assert data["type"].endswith("/authentication-required")
        assert data["instance"] == f"/api/requests/{world['request_id']}"

    def test_invalid_token(self, client, world):
        response = client.get(
            f"/api/requests/{world['request_id']}",
            headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
        assert json.loads(response.data)["type"].endswith("/invalid-token")

    def test_token_signed_with_other_secret(self, client, world):
        token = AuthService(secret="another-secret").generate_access_token(world["admin_id"], "hospital_admin")

        response = client.get(
            f"/api/requests/{world['request_id']}",
            headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401


class TestRequestEndpoints:

    def test_create_request(self, client, store, world, auth_headers):
        response = client.post(
            "/api/requests",
            json={"hospitalId": world["hospital_id"], "bloodType": "A+", "quantity": 450, "urgency": "high"},
            headers=auth_headers(world["recipient_id"], "recipient")
        )

        assert response.status_code == 201
        data = json.loads(response.data)["data"]
        assert data["status"] == "pending"
        assert data["recipientId"] == world["recipient_id"]
        assert store.count("notifications", {"userId": world["admin_id"], "type": "new_request"}) == 1

    def test_match_donors(self, client, store, world, auth_headers):
        response = client.post(
            f"/api/requests/match/{world['request_id']}",
            headers=auth_headers(world["admin_id"], "hospital_admin")
        )

        assert response.status_code == 200
        body = json.loads(response.data)
        assert body["matchedDonorsCount"] == 1
        assert body["data"]["matchedDonorIds"] == [world["donor_id"]]
        assert body["data"]["status"] == "matched"
        assert store.count("notifications", {"userId": world["donor_id"], "type": "potential_match"}) == 1

    def test_match_with_no_donors_is_ok(self, client, store, world, auth_headers):
        store.update_many("users", {"role": "donor"}, {"$set": {"donationEligibility": False}})

        response = client.post(
            f"/api/requests/match/{world['request_id']}",
            headers=auth_headers(world["admin_id"], "hospital_admin")
        )

        assert response.status_code == 200
        body = json.loads(response.data)
        assert body["matchedDonorsCount"] == 0
        assert body["data"]["status"] == "pending"

    def test_match_by_recipient_forbidden(self, client, world, auth_headers):
        response = client.post(
            f"/api/requests/match/{world['request_id']}",
            headers=auth_headers(world["recipient_id"], "recipient")
        )

        assert response.status_code == 403
        assert json.loads(response.data)["type"].endswith("/insufficient-permissions")

    def test_match_unknown_request(self, client, world, auth_headers):
        response = client.post(
            "/api/requests/match/64b7f0c2a1b2c3d4e5f60718",
            headers=auth_headers(world["admin_id"], "hospital_admin")
        )

        assert response.status_code == 404

    def test_status_update_flow(self, client, world, auth_headers):
        headers = auth_headers(world["admin_id"], "hospital_admin")

        early = client.put(
            f"/api/requests/{world['request_id']}/status", json={"status": "fulfilled"}, headers=headers
        )
        client.post(f"/api/requests/match/{world['request_id']}", headers=headers)
        fulfilled = client.put(
            f"/api/requests/{world['request_id']}/status", json={"status": "fulfilled"}, headers=headers
        )
        again = client.put(
            f"/api/requests/{world['request_id']}/status", json={"status": "cancelled"}, headers=headers
        )

        assert early.status_code == 409
        assert json.loads(early.data)["type"].endswith("/invalid-transition")
        assert fulfilled.status_code == 200
        assert json.loads(fulfilled.data)["data"]["status"] == "fulfilled"
        assert again.status_code == 409

    def test_invalid_status_value(self, client, world, auth_headers):
        response = client.put(
            f"/api/requests/{world['request_id']}/status",
            json={"status": "archived"},
            headers=auth_headers(world["recipient_id"], "recipient")
        )

        assert response.status_code == 400
        assert "errors" in json.loads(response.data)

    def test_list_mine(self, client, world, auth_headers):
        response = client.get("/api/requests/mine", headers=auth_headers(world["recipient_id"], "recipient"))

        body = json.loads(response.data)
        assert response.status_code == 200
        assert body["count"] == 1
        assert body["data"][0]["id"] == world["request_id"]


class TestInventoryEndpoints:

    def test_set_add_remove(self, client, world, auth_headers):
        headers = auth_headers(world["admin_id"], "hospital_admin")
        base = f"/api/inventory/{world['hospital_id']}"

        set_response = client.put(base, json={"bloodType": "A+", "quantity": 2500, "expiryDate": future()},
                                  headers=headers)
        add_response = client.post(f"{base}/add", json={"bloodType": "A+", "amount": 500, "expiryDate": future()},
                                   headers=headers)
        remove_response = client.post(f"{base}/remove", json={"bloodType": "A+", "amount": 1200},
                                      headers=headers)
        listing = client.get(base, headers=headers)

        assert set_response.status_code == 200
        assert json.loads(add_response.data)["data"]["quantity"] == 3000
        assert json.loads(remove_response.data)["data"]["quantity"] == 1800
        body = json.loads(listing.data)
        assert body["count"] == 1
        assert body["data"][0]["bloodType"] == "A+"

    def test_insufficient_stock(self, client, world, auth_headers):
        headers = auth_headers(world["admin_id"], "hospital_admin")
        base = f"/api/inventory/{world['hospital_id']}"
        client.put(base, json={"bloodType": "B+", "quantity": 100, "expiryDate": future()}, headers=headers)

        response = client.post(f"{base}/remove", json={"bloodType": "B+", "amount": 101}, headers=headers)

        assert response.status_code == 409
        assert json.loads(response.data)["type"].endswith("/insufficient-stock")

    def test_past_expiry_rejected(self, client, world, auth_headers):
        response = client.put(
            f"/api/inventory/{world['hospital_id']}",
            json={"bloodType": "B+", "quantity": 100, "expiryDate": future(-1)},
            headers=auth_headers(world["admin_id"], "hospital_admin")
        )

        assert response.status_code == 400

    def test_expire(self, client, store, world, auth_headers):
        store.insert("blood_inventory", {
            "hospitalId": world["hospital_id"], "bloodType": "O+", "quantity": 100,
            "expiryDate": datetime.utcnow() - timedelta(days=2)
        })

        response = client.post(
            f"/api/inventory/{world['hospital_id']}/expire",
            headers=auth_headers(world["admin_id"], "hospital_admin")
        )

        assert json.loads(response.data)["removed"] == 1

    def test_donor_forbidden(self, client, world, auth_headers):
        response = client.get(
            f"/api/inventory/{world['hospital_id']}", headers=auth_headers(world["donor_id"], "donor")
        )

        assert response.status_code == 403


class TestNotificationEndpoints:

    def test_list_and_mark_read(self, client, app, world, auth_headers):
        first = app.notification_gateway.notify(world["donor_id"], "One", "alert")
        second = app.notification_gateway.notify(world["donor_id"], "Two", "alert")
        headers = auth_headers(world["donor_id"], "donor")

        listing = client.get("/api/notifications", headers=headers)
        single = client.post(f"/api/notifications/{first.id}/read", headers=headers)
        many = client.post("/api/notifications/read", json={"notificationIds": [first.id, second.id]},
                           headers=headers)
        unread = client.get("/api/notifications?status=unread", headers=headers)

        assert json.loads(listing.data)["count"] == 2
        assert json.loads(single.data)["data"]["status"] == "read"
        assert json.loads(many.data)["updated"] == 1
        assert json.loads(unread.data)["count"] == 0

    def test_cannot_read_others_notification(self, client, app, world, auth_headers):
        notification = app.notification_gateway.notify(world["donor_id"], "Private", "alert")

        response = client.post(
            f"/api/notifications/{notification.id}/read",
            headers=auth_headers(world["recipient_id"], "recipient")
        )

        assert response.status_code == 404


class TestHospitalEndpoints:

    def test_register_and_get(self, client, world, make_user, auth_headers, geocoder):
        sysadmin = make_user(role="system_admin", location=None)
        headers = auth_headers(sysadmin, "system_admin")

        created = client.post(
            "/api/hospitals/register",
            json={"name": "North Clinic", "address": "2 North Road", "admins": [world["admin_id"]]},
            headers=headers
        )
        hospital_id = json.loads(created.data)["data"]["id"]
        fetched = client.get(f"/api/hospitals/{hospital_id}", headers=headers)

        assert created.status_code == 201
        geocoder.require_geocode.assert_called_once_with("2 North Road")
        assert json.loads(fetched.data)["data"]["admins"] == [world["admin_id"]]

    def test_register_blank_name_is_bad_request(self, client, store, make_user, auth_headers):
        sysadmin = make_user(role="system_admin", location=None)

        response = client.post(
            "/api/hospitals/register",
            json={"name": "   ", "address": "2 North Road"},
            headers=auth_headers(sysadmin, "system_admin")
        )

        assert response.status_code == 400
        assert json.loads(response.data)["type"].endswith("/validation-error")
        assert store.count("hospitals") == 0

    def test_register_requires_system_admin(self, client, world, auth_headers):
        response = client.post(
            "/api/hospitals/register",
            json={"name": "North Clinic", "address": "2 North Road"},
            headers=auth_headers(world["admin_id"], "hospital_admin")
        )

        assert response.status_code == 403


class TestHealthEndpoint:

    def test_healthy(self, client):
        response = client.get("/api/healthz")

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["status"] == "healthy"
        assert data["dependencies"]["mongodb"]["status"] == "healthy"

    def test_unhealthy_store(self, client, store):
        store.health_check = lambda: {"status": "unhealthy", "error": "down"}

        response = client.get("/api/healthz")

        assert response.status_code == 503


class TestNotificationWorkers:

    def test_worker_pool_shut_down_at_exit(self, store, geocoder):
        with patch("hemolink.app.atexit.register") as register:
            app = create_app(
                mongodb_service=store,
                notification_gateway=MongoNotificationGateway(store),
                auth_service=AuthService(secret=SECRET),
                geocoder=geocoder,
                config_overrides={"TESTING": True, "NOTIFICATION_WORKERS": 2}
            )

        executor = app.request_service.dispatcher.executor
        register.assert_called_once_with(executor.shutdown)
        register.call_args[0][0]()
        with pytest.raises(RuntimeError):
            executor.submit(len, [])

    def test_inline_dispatch_registers_nothing(self, store, geocoder):
        with patch("hemolink.app.atexit.register") as register:
            create_app(
                mongodb_service=store,
                notification_gateway=MongoNotificationGateway(store),
                auth_service=AuthService(secret=SECRET),
                geocoder=geocoder,
                config_overrides={"TESTING": True}
            )

        register.assert_not_called()
