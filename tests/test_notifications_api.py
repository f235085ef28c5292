"""Tests for the in-app notification feed and its push."""
from conftest import FakeSender, register_payload

from sniket.core.config import settings
from sniket.domains.fcm.service import dispatch_service


def _create(client, user_id="u_prov", user_type="provider", **extra):
    payload = {
        "user_id": user_id,
        "user_type": user_type,
        "type": "BOOKING",
        "title": "New booking",
        "message": "Anna booked a cleaning on Friday",
        "related_id": "booking-17",
        "related_type": "booking",
    }
    payload.update(extra)
    return client.post("/api/v1/notifications", json=payload)


def test_create_notification_pushes_to_recipient(client, fake_sender):
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u_prov", "provider"))

    response = _create(client, metadata={"bookingDate": "2026-10-23"})

    assert response.status_code == 201
    body = response.json()
    assert body["notification"]["title"] == "New booking"
    assert body["notification"]["is_read"] is False
    assert body["push_result"] == {"success": True, "success_count": 1, "failure_count": 0}

    call = fake_sender.calls[0]
    assert call["tokens"] == ["tok1"]
    assert call["data"]["type"] == "booking"
    assert call["data"]["userId"] == "u_prov"
    assert call["data"]["userType"] == "provider"
    assert call["data"]["relatedId"] == "booking-17"
    assert call["data"]["bookingDate"] == "2026-10-23"
    assert call["data"]["notificationId"] == str(body["notification"]["notification_id"])


def test_push_failure_does_not_block_notification(client, monkeypatch):
    monkeypatch.setattr(
        dispatch_service,
        "send_push_notification_to_multiple",
        FakeSender(error=RuntimeError("fcm down")),
    )
    client.post("/api/v1/fcm/register", json=register_payload("tok1", "u_prov", "provider"))

    response = _create(client)

    assert response.status_code == 201
    assert response.json()["push_result"]["success"] is False

    feed = client.get("/api/v1/notifications", params={"user_id": "u_prov", "user_type": "provider"}).json()
    assert feed["total_count"] == 1


def test_create_without_devices_still_stores(client, fake_sender):
    response = _create(client, user_id="u_cust", user_type="customer")

    assert response.status_code == 201
    assert response.json()["push_result"]["success_count"] == 0
    assert fake_sender.calls == []


def test_create_requires_key_when_configured(client, fake_sender, monkeypatch):
    monkeypatch.setattr(settings, "INTERNAL_API_KEY", "s3cret")

    response = _create(client)

    assert response.status_code == 401
    assert response.json()["code"] == "NOTIF_CREATE_401_1"


def test_feed_is_newest_first_and_paginated(client, fake_sender):
    for i in range(3):
        _create(client, title=f"Booking {i}")
    _create(client, user_id="someone_else", title="Not mine")

    first_page = client.get(
        "/api/v1/notifications",
        params={"user_id": "u_prov", "user_type": "provider", "page": 0, "size": 2},
    ).json()

    assert first_page["total_count"] == 3
    assert first_page["unread_count"] == 3
    assert [n["title"] for n in first_page["notifications"]] == ["Booking 2", "Booking 1"]

    second_page = client.get(
        "/api/v1/notifications",
        params={"user_id": "u_prov", "user_type": "provider", "page": 1, "size": 2},
    ).json()
    assert [n["title"] for n in second_page["notifications"]] == ["Booking 0"]


def test_mark_read(client, fake_sender):
    notification_id = _create(client).json()["notification"]["notification_id"]

    first = client.patch(f"/api/v1/notifications/{notification_id}/read")
    assert first.status_code == 200
    assert first.json()["message"] == "Marked as read"

    again = client.patch(f"/api/v1/notifications/{notification_id}/read")
    assert again.json()["message"] == "Already read"

    feed = client.get(
        "/api/v1/notifications",
        params={"user_id": "u_prov", "user_type": "provider", "unread_only": True},
    ).json()
    assert feed["notifications"] == []
    assert feed["unread_count"] == 0


def test_mark_read_unknown_notification(client):
    response = client.patch("/api/v1/notifications/9999/read")

    assert response.status_code == 404
    assert response.json()["code"] == "NOTIF_READ_404_1"
