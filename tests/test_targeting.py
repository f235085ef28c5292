"""Tests for send-time target resolution."""
from sniket.domains.fcm.repository.fcm_repository import FcmRepository
from sniket.domains.fcm.service.targeting_service import resolve_target_tokens
from sniket.models.fcm_user_subscription import UserType
from sniket.schemas.fcm.register_schema import DeviceTokenSchema, UserSubscriptionSchema


def _seed(db_session):
    repo = FcmRepository(db_session)
    registrations = [
        ("tok1", "d1", "u_cust", UserType.CUSTOMER),
        ("tok1", "d1", "u_prov", UserType.PROVIDER),
        ("tok2", "d2", "u_prov", UserType.PROVIDER),
        ("tok3", "d3", "u_admin", UserType.ADMIN),
    ]
    for token, device_id, user_id, user_type in registrations:
        device = repo.upsert_device(DeviceTokenSchema(token=token, device_id=device_id))
        repo.upsert_subscription(device, UserSubscriptionSchema(user_id=user_id, user_type=user_type))
    db_session.commit()
    return repo


def test_broadcast_resolves_every_token_once(db_session):
    repo = _seed(db_session)
    assert resolve_target_tokens(repo) == ["tok1", "tok2", "tok3"]


def test_role_target(db_session):
    repo = _seed(db_session)
    assert resolve_target_tokens(repo, target_user_type=UserType.PROVIDER) == ["tok1", "tok2"]
    assert resolve_target_tokens(repo, target_user_type=UserType.CUSTOMER) == ["tok1"]


def test_user_target_ignores_role_when_not_given(db_session):
    repo = _seed(db_session)
    assert resolve_target_tokens(repo, target_user_id="u_prov") == ["tok1", "tok2"]


def test_user_and_role_target_narrows(db_session):
    repo = _seed(db_session)
    assert resolve_target_tokens(repo, target_user_id="u_prov", target_user_type=UserType.CUSTOMER) == []
    assert resolve_target_tokens(repo, target_user_id="u_cust", target_user_type=UserType.CUSTOMER) == ["tok1"]


def test_unknown_user_resolves_to_nothing(db_session):
    repo = _seed(db_session)
    assert resolve_target_tokens(repo, target_user_id="u_other") == []


def test_empty_registry_broadcast(db_session):
    assert resolve_target_tokens(FcmRepository(db_session)) == []
