"""Tests for the /api/v1/fcm endpoints."""
from conftest import FakeSender, register_payload

from sniket.core.config import settings
from sniket.domains.fcm.repository.fcm_repository import FcmRepository
from sniket.domains.fcm.service import dispatch_service


def test_register_stores_subscription(client, no_topic_calls):
    response = client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "customer"))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["deviceId"] == "device-1"
    assert [s["topic"] for s in body["subscriptions"]] == ["user_u1", "customer_notifications"]
    assert no_topic_calls == ["user_u1", "customer_notifications"]

    listing = client.get("/api/v1/fcm/subscriptions", params={"token": "tok1"}).json()
    assert [(s["userId"], s["userType"]) for s in listing["subscriptions"]] == [("u1", "customer")]


def test_register_twice_keeps_one_subscription(client):
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "customer"))
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "customer"))

    listing = client.get("/api/v1/fcm/subscriptions", params={"token": "tok1"}).json()
    assert len(listing["subscriptions"]) == 1


def test_register_rejects_unknown_role(client):
    response = client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "guest"))
    assert response.status_code == 422


def test_unregister_unknown_pair_succeeds(client):
    response = client.post("/api/v1/fcm/unregister", json={"userId": "nobody", "userType": "admin"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "removed": 0, "message": "Nothing to unregister"}


def test_register_then_unregister_round_trip(client):
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "customer"))
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u2", "provider"))

    response = client.post(
        "/api/v1/fcm/unregister",
        json={"userId": "u1", "userType": "customer", "token": "tok1"},
    )
    assert response.json()["removed"] == 1

    listing = client.get("/api/v1/fcm/subscriptions", params={"token": "tok1"}).json()
    assert [s["userId"] for s in listing["subscriptions"]] == ["u2"]


def test_send_with_no_devices(client, fake_sender):
    response = client.post("/api/v1/fcm/send", json={"title": "Hello", "body": "World"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["results"] == {"successCount": 0, "failureCount": 0, "invalidTokens": []}
    assert body["message"] == "No active devices found for target criteria"
    assert fake_sender.calls == []


def test_send_shared_device_scenario(client, fake_sender):
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u_cust", "customer"))
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u_prov", "provider"))

    to_providers = client.post("/api/v1/fcm/send", json={"targetUserType": "provider", "title": "X", "body": ""})
    assert to_providers.json()["results"]["successCount"] == 1
    assert fake_sender.calls[0]["tokens"] == ["tok1"]

    to_stranger = client.post("/api/v1/fcm/send", json={"targetUserId": "u_other", "title": "Y", "body": ""})
    assert to_stranger.json()["results"]["successCount"] == 0
    assert len(fake_sender.calls) == 1


def test_send_blank_targets_are_broadcast(client, fake_sender):
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "customer", device_id="d1"))
    client.post("/api/v1/fcm/register", json=register_payload("tok2", "u2", "admin", device_id="d2"))

    response = client.post(
        "/api/v1/fcm/send",
        json={"targetUserId": "", "targetUserType": "", "title": "All", "body": "hands"},
    )

    assert response.json()["success"] is True
    assert fake_sender.calls[0]["tokens"] == ["tok1", "tok2"]


def test_send_reports_failed_delivery(client, monkeypatch):
    monkeypatch.setattr(dispatch_service, "send_push_notification_to_multiple", FakeSender(fail_all=True))
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "customer"))

    body = client.post("/api/v1/fcm/send", json={"targetUserId": "u1", "title": "Hi", "body": ""}).json()

    assert body["success"] is False
    assert body["error"] == "delivery_failed"
    assert body["results"]["failureCount"] == 1


def test_send_invalid_token_is_cleaned_up(client, monkeypatch):
    monkeypatch.setattr(dispatch_service, "send_push_notification_to_multiple", FakeSender(invalid_tokens=["tok1"]))
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "customer"))

    body = client.post("/api/v1/fcm/send", json={"title": "Hi", "body": ""}).json()
    assert body["results"]["invalidTokens"] == ["tok1"]

    listing = client.get("/api/v1/fcm/subscriptions", params={"token": "tok1"}).json()
    assert listing["subscriptions"] == []


def test_send_requires_title(client, fake_sender):
    response = client.post("/api/v1/fcm/send", json={"body": "no title"})
    assert response.status_code == 422


def test_send_checks_internal_key_when_configured(client, fake_sender, monkeypatch):
    monkeypatch.setattr(settings, "INTERNAL_API_KEY", "s3cret")
    payload = {"title": "Hi", "body": ""}

    missing = client.post("/api/v1/fcm/send", json=payload)
    assert missing.status_code == 401
    assert missing.json()["code"] == "FCM_SEND_401_1"

    malformed = client.post("/api/v1/fcm/send", json=payload, headers={"Authorization": "s3cret"})
    assert malformed.json()["code"] == "FCM_SEND_401_2"

    wrong = client.post("/api/v1/fcm/send", json=payload, headers={"Authorization": "Bearer nope"})
    assert wrong.json()["code"] == "FCM_SEND_401_3"

    ok = client.post("/api/v1/fcm/send", json=payload, headers={"Authorization": "Bearer s3cret"})
    assert ok.status_code == 200


def test_verify_registration(client):
    missing = client.post("/api/v1/fcm/verify-registration", json={"userId": "u1", "userType": "customer"}).json()
    assert missing["exists"] is False
    assert missing["shouldReRegister"] is True

    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "customer"))
    present = client.post("/api/v1/fcm/verify-registration", json={"userId": "u1", "userType": "customer"}).json()
    assert present["exists"] is True
    assert present["hasActiveSubscriptions"] is True
    assert present["hasValidDevices"] is True
    assert present["shouldReRegister"] is False


def test_cleanup_token_deactivates_old_token(client, fake_sender):
    client.post("/api/v1/fcm/register", json=register_payload("tok-old", "u1", "customer"))

    response = client.post("/api/v1/fcm/cleanup-token", json={"oldToken": "tok-old", "deviceId": "device-1"})
    assert response.json()["success"] is True
    assert response.json()["deactivatedTokens"] == 1

    body = client.post("/api/v1/fcm/send", json={"targetUserId": "u1", "title": "Hi", "body": ""}).json()
    assert body["message"] == "No active devices found for target criteria"

    verify = client.post("/api/v1/fcm/verify-registration", json={"userId": "u1", "userType": "customer"}).json()
    assert verify["shouldReRegister"] is True


def test_register_storage_error_returns_error_response(client, monkeypatch):
    def broken_upsert(self, device_token):
        raise RuntimeError("disk full")

    monkeypatch.setattr(FcmRepository, "upsert_device", broken_upsert)
    response = client.post("/api/v1/fcm/register", json=register_payload("tok1", "u1", "customer"))

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "FCM_REGISTER_500_1"
    assert body["error"] == "registry_write_failed"
    assert body["path"] == "/api/v1/fcm/register"
