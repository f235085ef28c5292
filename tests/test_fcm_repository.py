"""Tests for the server-side token registry."""
from datetime import datetime, timedelta

from sniket.domains.fcm.repository.fcm_repository import FcmRepository
from sniket.models.fcm_cleanup_log import FcmCleanupLog
from sniket.models.fcm_device import DeviceStatus, FcmDevice
from sniket.models.fcm_user_subscription import FcmUserSubscription, SubscriptionStatus, UserType
from sniket.schemas.fcm.register_schema import DeviceTokenSchema, UserSubscriptionSchema


def _register(repo, token, user_id, user_type, device_id="device-1", last_active=None):
    device = repo.upsert_device(DeviceTokenSchema(token=token, device_id=device_id, browser="Chrome"))
    repo.upsert_subscription(
        device,
        UserSubscriptionSchema(user_id=user_id, user_type=user_type, last_active=last_active),
    )
    repo.db.commit()
    return device


def test_register_same_triple_twice_keeps_one_entry(db_session):
    repo = FcmRepository(db_session)
    first = datetime(2026, 1, 1, 10, 0)
    second = datetime(2026, 1, 1, 11, 0)

    _register(repo, "tok1", "u1", UserType.CUSTOMER, last_active=first)
    _register(repo, "tok1", "u1", UserType.CUSTOMER, last_active=second)

    rows = db_session.query(FcmUserSubscription).all()
    assert len(rows) == 1
    assert rows[0].last_active == second
    assert db_session.query(FcmDevice).count() == 1


def test_one_token_holds_several_roles(db_session):
    repo = FcmRepository(db_session)
    _register(repo, "tok1", "u_cust", UserType.CUSTOMER)
    _register(repo, "tok1", "u_prov", UserType.PROVIDER)

    users = repo.list_active_users("tok1")
    assert [(s.user_id, s.user_type) for s in users] == [
        ("u_cust", UserType.CUSTOMER),
        ("u_prov", UserType.PROVIDER),
    ]
    assert repo.is_active("u_prov")
    assert repo.is_active("u_prov", UserType.PROVIDER)
    assert not repo.is_active("u_prov", UserType.ADMIN)


def test_rotated_token_on_known_device_keeps_subscriptions(db_session):
    repo = FcmRepository(db_session)
    _register(repo, "tok-old", "u1", UserType.CUSTOMER, device_id="device-9")

    device = repo.upsert_device(DeviceTokenSchema(token="tok-new", device_id="device-9"))
    db_session.commit()

    assert device.token == "tok-new"
    assert db_session.query(FcmDevice).count() == 1
    assert [s.user_id for s in repo.list_active_users("tok-new")] == ["u1"]
    assert repo.list_active_users("tok-old") == []

    log = db_session.query(FcmCleanupLog).one()
    assert log.reason == "token_refresh"
    assert log.token_prefix == "tok-old"


def test_remove_subscription_is_idempotent(db_session):
    repo = FcmRepository(db_session)
    _register(repo, "tok1", "u1", UserType.CUSTOMER)

    assert repo.remove_subscription("u1", UserType.CUSTOMER, token="tok1") == 1
    assert repo.remove_subscription("u1", UserType.CUSTOMER, token="tok1") == 0
    assert repo.remove_subscription("ghost", UserType.ADMIN) == 0
    db_session.commit()

    assert repo.list_active_users("tok1") == []


def test_remove_subscription_leaves_other_roles_on_the_token(db_session):
    repo = FcmRepository(db_session)
    _register(repo, "tok1", "u1", UserType.CUSTOMER)
    _register(repo, "tok1", "u1", UserType.PROVIDER)

    repo.remove_subscription("u1", UserType.CUSTOMER)
    db_session.commit()

    assert [s.user_type for s in repo.list_active_users("tok1")] == [UserType.PROVIDER]


def test_remove_tokens_drops_devices_and_subscriptions(db_session):
    repo = FcmRepository(db_session)
    _register(repo, "tok-dead", "u1", UserType.CUSTOMER, device_id="d1")
    _register(repo, "tok-live", "u2", UserType.CUSTOMER, device_id="d2")

    assert repo.remove_tokens(["tok-dead", "tok-unknown"]) == 1

    assert repo.get_device_by_token("tok-dead") is None
    assert db_session.query(FcmUserSubscription).filter_by(user_id="u1").count() == 0
    assert repo.all_active_tokens() == ["tok-live"]
    assert db_session.query(FcmCleanupLog).filter_by(reason="invalid_token").count() == 1


def test_deactivate_token_stops_targeting(db_session):
    repo = FcmRepository(db_session)
    _register(repo, "tok1", "u1", UserType.CUSTOMER)

    assert repo.deactivate_token("tok1", device_id="device-1") == 1
    db_session.commit()

    device = repo.get_device_by_token("tok1")
    assert device.status == DeviceStatus.INACTIVE
    assert all(s.status == SubscriptionStatus.INACTIVE for s in device.subscriptions)
    assert repo.tokens_for_user("u1") == []
    assert repo.all_active_tokens() == []


def test_deactivate_unknown_token_is_logged_only(db_session):
    repo = FcmRepository(db_session)

    assert repo.deactivate_token("never-seen") == 0
    db_session.commit()

    assert db_session.query(FcmCleanupLog).count() == 1


def test_prune_stale_tokens(db_session):
    repo = FcmRepository(db_session)
    now = datetime.utcnow()
    _register(repo, "tok-fresh", "u1", UserType.CUSTOMER, device_id="d1", last_active=now)
    _register(repo, "tok-idle", "u2", UserType.CUSTOMER, device_id="d2", last_active=now - timedelta(days=60))
    stale = _register(repo, "tok-dead", "u3", UserType.CUSTOMER, device_id="d3", last_active=now)
    stale.status = DeviceStatus.INACTIVE
    stale.updated_at = now - timedelta(days=60)
    db_session.commit()

    removed = repo.prune_stale_tokens(now - timedelta(days=30))
    db_session.commit()

    # u2's subscription + the inactive device (its subscription goes with it)
    assert removed == 2
    assert repo.get_device_by_token("tok-dead") is None
    assert repo.get_device_by_token("tok-idle") is not None
    assert [s.user_id for s in db_session.query(FcmUserSubscription).all()] == ["u1"]
