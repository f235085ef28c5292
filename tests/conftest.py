"""Pytest fixtures for API and client tests."""

import os
from typing import Any, Dict, Generator, List

os.environ["DATABASE_URI"] = "sqlite://"
os.environ["INTERNAL_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sniket.client.push_provider import PushProvider, TokenUnavailableError
from sniket.client.types import PermissionState
from sniket.db import get_db
from sniket.domains.fcm.service import dispatch_service, registration_service
from sniket.main import create_app
from sniket.models import Base


@pytest.fixture()
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def app(db_session: Session):
    app = create_app()

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


class FakeSender:
    """Stands in for send_push_notification_to_multiple."""

    def __init__(self, invalid_tokens: List[str] = (), fail_all: bool = False, error: Exception = None):
        self.invalid_tokens = list(invalid_tokens)
        self.fail_all = fail_all
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, fcm_tokens, title, body, data=None, click_action=None, image_url=None, tag=None):
        tokens = list(fcm_tokens)
        self.calls.append({
            "tokens": tokens,
            "title": title,
            "body": body,
            "data": data,
            "click_action": click_action,
            "image_url": image_url,
            "tag": tag,
        })
        if self.error is not None:
            raise self.error
        failed = tokens if self.fail_all else [t for t in tokens if t in self.invalid_tokens]
        return {
            "success_count": len(tokens) - len(failed),
            "failure_count": len(failed),
            "failed_tokens": failed,
            "invalid_tokens": [t for t in failed if t in self.invalid_tokens],
            "failure_details": [],
        }


@pytest.fixture()
def fake_sender(monkeypatch) -> FakeSender:
    sender = FakeSender()
    monkeypatch.setattr(dispatch_service, "send_push_notification_to_multiple", sender)
    return sender


@pytest.fixture(autouse=True)
def no_topic_calls(monkeypatch) -> List[str]:
    """Topic subscription never reaches Firebase in tests."""
    subscribed: List[str] = []

    def fake_subscribe(token, topics):
        subscribed.extend(topics)
        return [{"topic": t, "success": True} for t in topics]

    monkeypatch.setattr(registration_service, "subscribe_to_topics", fake_subscribe)
    return subscribed


class FakePushProvider(PushProvider):
    def __init__(
        self,
        supported: bool = True,
        permission: PermissionState = PermissionState.GRANTED,
        answer: PermissionState = PermissionState.GRANTED,
        token: str = "tok-1",
    ):
        self.supported = supported
        self.permission = permission
        self.answer = answer
        self.token = token
        self.prompts = 0
        self.token_calls = 0

    async def is_supported(self) -> bool:
        return self.supported

    async def permission_state(self) -> PermissionState:
        return self.permission

    async def request_permission(self) -> PermissionState:
        self.prompts += 1
        self.permission = self.answer
        return self.answer

    async def get_token(self) -> str:
        self.token_calls += 1
        if not self.token:
            raise TokenUnavailableError("messaging/token-unavailable")
        return self.token

    async def delete_token(self) -> bool:
        self.token = None
        return True


@pytest.fixture()
def provider() -> FakePushProvider:
    return FakePushProvider()


def register_payload(token: str, user_id: str, user_type: str, device_id: str = "device-1") -> Dict[str, Any]:
    return {
        "deviceToken": {
            "token": token,
            "deviceId": device_id,
            "browser": "Chrome",
            "platform": "Linux x86_64",
            "userAgent": "Mozilla/5.0 Chrome/120.0",
        },
        "userSubscription": {
            "userId": user_id,
            "userType": user_type,
            "email": f"{user_id}@example.com",
        },
        "topics": [f"user_{user_id}", f"{user_type}_notifications"],
    }
