"""Tests for the foreground listener."""
from sniket.client.foreground import ForegroundListener
from sniket.client.registry import TokenRegistry
from sniket.client.storage import MemoryStore
from sniket.schemas.fcm.register_schema import UserSubscriptionSchema


def _listener(*pairs):
    registry = TokenRegistry(MemoryStore())
    for user_id, user_type in pairs:
        registry.upsert("tok1", UserSubscriptionSchema(user_id=user_id, user_type=user_type))
    toasts = []
    return ForegroundListener(registry, toasts.append), toasts


def test_toast_for_active_user():
    listener, toasts = _listener(("u1", "customer"))

    consumed = listener.on_message({
        "notification": {"title": "Message", "body": "Hi there"},
        "data": {"userId": "u1", "clickAction": "/chat/5"},
    })

    assert consumed
    assert toasts[0].title == "Message"
    assert toasts[0].body == "Hi there"
    assert toasts[0].click_action == "/chat/5"
    assert toasts[0].data["userId"] == "u1"


def test_message_for_someone_else_is_ignored():
    listener, toasts = _listener(("u1", "customer"))

    assert not listener.on_message({"notification": {"title": "X"}, "data": {"userId": "u2", "userType": "provider"}})
    assert toasts == []


def test_empty_registry_fails_open():
    listener, toasts = _listener()

    assert listener.on_message({"data": {"userType": "admin"}})
    assert toasts[0].title == "New Notification"
    assert toasts[0].body == "You have a new message"
    assert toasts[0].click_action == "/"


def test_fcm_options_link_is_click_target():
    listener, toasts = _listener()

    listener.on_message({"notification": {"title": "T"}, "fcmOptions": {"link": "https://app.example/x"}})

    assert toasts[0].click_action == "https://app.example/x"
