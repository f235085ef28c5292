from datetime import datetime

from fastapi import Request
from loguru import logger
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from sniket.core.firebase import short_token, subscribe_to_topics
from sniket.domains.fcm.exception import fcm_error
from sniket.domains.fcm.repository.fcm_repository import FcmRepository
from sniket.models.fcm_device import DeviceStatus
from sniket.schemas.fcm.register_schema import (
    CleanupTokenRequest,
    CleanupTokenResponse,
    RegisterRequest,
    RegisterResponse,
    SubscriptionItem,
    SubscriptionListResponse,
    TopicResult,
    UnregisterRequest,
    UnregisterResponse,
    VerifyRegistrationRequest,
    VerifyRegistrationResponse,
)


class FcmRegistrationService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = FcmRepository(db)

    # ============================
    # Register (token, user, role)
    # ============================
    def register(self, request: Request, body: RegisterRequest):
        path = request.url.path
        device_token = body.device_token
        subscription = body.user_subscription

        logger.info(
            f"[FCM Register] {subscription.user_type.value} {subscription.user_id} "
            f"on device {device_token.device_id} ({short_token(device_token.token)}), "
            f"{len(body.topics)} topic(s)"
        )

        try:
            device = self.repo.upsert_device(device_token)
            self.repo.upsert_subscription(device, subscription)
            self.db.commit()
        except OperationalError as e:
            self.db.rollback()
            logger.error(f"[FCM Register] Storage unavailable: {e}")
            return fcm_error("FCM_REGISTER_503_1", path)
        except Exception as e:
            self.db.rollback()
            logger.error(f"[FCM Register] Registration failed: {e}")
            return fcm_error("FCM_REGISTER_500_1", path)

        # topic failures are reported, they do not undo the registration
        topic_results = subscribe_to_topics(device_token.token, body.topics) if body.topics else []

        return RegisterResponse(
            success=True,
            device_id=device.device_id,
            subscriptions=[TopicResult(**r) for r in topic_results],
            message="FCM registration successful",
            time_stamp=datetime.utcnow().isoformat(),
        )

    # ============================
    # Unregister
    # ============================
    def unregister(self, request: Request, body: UnregisterRequest):
        path = request.url.path

        try:
            removed = self.repo.remove_subscription(
                user_id=body.user_id,
                user_type=body.user_type,
                token=body.token,
                device_id=body.device_id,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"[FCM Unregister] Failed for {body.user_type.value} {body.user_id}: {e}")
            return fcm_error("FCM_UNREGISTER_500_1", path)

        logger.info(f"[FCM Unregister] {body.user_type.value} {body.user_id}: {removed} subscription(s) removed")

        return UnregisterResponse(
            success=True,
            removed=removed,
            message="FCM unregistration successful" if removed else "Nothing to unregister",
        )

    # ============================
    # Verify registration
    # ============================
    def verify_registration(self, request: Request, body: VerifyRegistrationRequest):
        path = request.url.path

        try:
            subscriptions = self.repo.get_active_subscriptions(body.user_id, body.user_type)
        except Exception as e:
            logger.error(f"[FCM Verify] Lookup failed for {body.user_type.value} {body.user_id}: {e}")
            return fcm_error("FCM_VERIFY_500_1", path)

        has_active_subscriptions = bool(subscriptions)
        has_valid_devices = any(
            s.device is not None and s.device.status == DeviceStatus.ACTIVE
            for s in subscriptions
        )
        exists = has_active_subscriptions and has_valid_devices

        return VerifyRegistrationResponse(
            exists=exists,
            has_active_subscriptions=has_active_subscriptions,
            has_valid_devices=has_valid_devices,
            should_re_register=not exists,
            time_stamp=datetime.utcnow().isoformat(),
        )

    # ============================
    # Rotated token cleanup
    # ============================
    def cleanup_token(self, request: Request, body: CleanupTokenRequest):
        path = request.url.path

        logger.info(
            f"[FCM Cleanup] Deactivating {short_token(body.old_token)} "
            f"(device={body.device_id}, user={body.user_id})"
        )

        try:
            count = self.repo.deactivate_token(
                body.old_token,
                device_id=body.device_id,
                user_id=body.user_id,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"[FCM Cleanup] Token cleanup failed: {e}")
            return fcm_error("FCM_CLEANUP_500_1", path)

        return CleanupTokenResponse(
            success=True,
            deactivated_tokens=count,
            message="Token cleanup completed",
            time_stamp=datetime.utcnow().isoformat(),
        )

    # ============================
    # Registry listing
    # ============================
    def list_subscriptions(self, token: str) -> SubscriptionListResponse:
        rows = self.repo.list_active_users(token)
        return SubscriptionListResponse(
            token=token,
            subscriptions=[SubscriptionItem.model_validate(row) for row in rows],
        )
