from datetime import datetime
from typing import Iterable, List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from sniket.core.firebase import short_token
from sniket.models.fcm_cleanup_log import FcmCleanupLog
from sniket.models.fcm_device import DeviceStatus, FcmDevice
from sniket.models.fcm_user_subscription import (
    FcmUserSubscription,
    SubscriptionStatus,
    UserType,
)
from sniket.schemas.fcm.register_schema import DeviceTokenSchema, UserSubscriptionSchema


class FcmRepository:
    """Server-side mirror of the device token registry."""

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------
    # Internal helpers
    # -------------------------------------------------
    def _active_subscriptions(self):
        return (
            self.db.query(FcmUserSubscription)
            .join(FcmDevice, FcmUserSubscription.token_id == FcmDevice.token_id)
            .filter(
                FcmDevice.status == DeviceStatus.ACTIVE,
                FcmUserSubscription.status == SubscriptionStatus.ACTIVE,
            )
        )

    def _log_cleanup(self, token: str, reason: str, device_id=None, user_id=None):
        self.db.add(
            FcmCleanupLog(
                token_prefix=token[:20],
                device_id=device_id,
                user_id=user_id,
                reason=reason,
            )
        )

    @staticmethod
    def _unique(tokens: Iterable[str]) -> List[str]:
        seen = set()
        ordered = []
        for token in tokens:
            if token and token not in seen:
                seen.add(token)
                ordered.append(token)
        return ordered

    # -------------------------------------------------
    # Device tokens
    # -------------------------------------------------
    def get_device_by_token(self, token: str) -> Optional[FcmDevice]:
        return (
            self.db.query(FcmDevice)
            .filter(FcmDevice.token == token)
            .first()
        )

    def get_device_by_device_id(self, device_id: str) -> Optional[FcmDevice]:
        return (
            self.db.query(FcmDevice)
            .filter(FcmDevice.device_id == device_id)
            .order_by(FcmDevice.updated_at.desc())
            .first()
        )

    def upsert_device(self, device_token: DeviceTokenSchema) -> FcmDevice:
        """
        Store/update a device token.
        A known device_id arriving with a new token is a provider-side rotation:
        the row is re-pointed to the new token and keeps its subscriptions.
        """
        now = datetime.utcnow()

        # 1) token already known
        device = self.get_device_by_token(device_token.token)
        if device:
            device.device_id = device_token.device_id or device.device_id
            device.browser = device_token.browser or device.browser
            device.platform = device_token.platform or device.platform
            device.user_agent = device_token.user_agent or device.user_agent
            device.status = DeviceStatus.ACTIVE
            device.last_validated = now
            self.db.flush()
            return device

        # 2) same browser, rotated token
        if device_token.device_id:
            device = self.get_device_by_device_id(device_token.device_id)
            if device:
                logger.info(
                    f"[FCM] Token rotated on device {device_token.device_id}: "
                    f"{short_token(device.token)} -> {short_token(device_token.token)}"
                )
                self._log_cleanup(device.token, "token_refresh", device_id=device.device_id)
                device.token = device_token.token
                device.browser = device_token.browser or device.browser
                device.platform = device_token.platform or device.platform
                device.user_agent = device_token.user_agent or device.user_agent
                device.status = DeviceStatus.ACTIVE
                device.last_validated = now
                self.db.flush()
                return device

        # 3) new device
        device = FcmDevice(
            token=device_token.token,
            device_id=device_token.device_id,
            browser=device_token.browser,
            platform=device_token.platform,
            user_agent=device_token.user_agent,
            status=DeviceStatus.ACTIVE,
            registered_at=device_token.registered_at or now,
            last_validated=now,
        )
        self.db.add(device)
        self.db.flush()
        return device

    # -------------------------------------------------
    # Subscriptions
    # -------------------------------------------------
    def get_subscription(
        self, device: FcmDevice, user_id: str, user_type: UserType
    ) -> Optional[FcmUserSubscription]:
        return (
            self.db.query(FcmUserSubscription)
            .filter(
                FcmUserSubscription.token_id == device.token_id,
                FcmUserSubscription.user_id == user_id,
                FcmUserSubscription.user_type == user_type,
            )
            .first()
        )

    def upsert_subscription(
        self, device: FcmDevice, subscription: UserSubscriptionSchema
    ) -> FcmUserSubscription:
        last_active = subscription.last_active or datetime.utcnow()

        existing = self.get_subscription(device, subscription.user_id, subscription.user_type)
        if existing:
            existing.last_active = last_active
            existing.active_session_id = subscription.active_session_id or existing.active_session_id
            existing.email = subscription.email or existing.email
            existing.name = subscription.name or existing.name
            existing.status = SubscriptionStatus.ACTIVE
            self.db.flush()
            return existing

        row = FcmUserSubscription(
            token_id=device.token_id,
            user_id=subscription.user_id,
            user_type=subscription.user_type,
            email=subscription.email,
            name=subscription.name,
            active_session_id=subscription.active_session_id,
            last_active=last_active,
            status=SubscriptionStatus.ACTIVE,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def remove_subscription(
        self,
        user_id: str,
        user_type: UserType,
        token: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> int:
        """
        Delete matching subscriptions. Scoped to one token/device when given,
        every device of the user otherwise. Missing rows are not an error.
        """
        query = (
            self.db.query(FcmUserSubscription)
            .join(FcmDevice, FcmUserSubscription.token_id == FcmDevice.token_id)
            .filter(
                FcmUserSubscription.user_id == user_id,
                FcmUserSubscription.user_type == user_type,
            )
        )
        if token:
            query = query.filter(FcmDevice.token == token)
        elif device_id:
            query = query.filter(FcmDevice.device_id == device_id)

        rows = query.all()
        for row in rows:
            self.db.delete(row)
        self.db.flush()
        return len(rows)

    def list_active_users(self, token: str) -> List[FcmUserSubscription]:
        return (
            self._active_subscriptions()
            .filter(FcmDevice.token == token)
            .order_by(FcmUserSubscription.subscription_id.asc())
            .all()
        )

    def is_active(self, user_id: str, user_type: Optional[UserType] = None) -> bool:
        query = self._active_subscriptions().filter(FcmUserSubscription.user_id == user_id)
        if user_type is not None:
            query = query.filter(FcmUserSubscription.user_type == user_type)
        return query.first() is not None

    def get_active_subscriptions(self, user_id: str, user_type: UserType) -> List[FcmUserSubscription]:
        """Active-status subscriptions of a user role, whatever the state of their device."""
        return (
            self.db.query(FcmUserSubscription)
            .filter(
                FcmUserSubscription.status == SubscriptionStatus.ACTIVE,
                FcmUserSubscription.user_id == user_id,
                FcmUserSubscription.user_type == user_type,
            )
            .all()
        )

    # -------------------------------------------------
    # Targeting lookups
    # -------------------------------------------------
    def tokens_for_user(self, user_id: str, user_type: Optional[UserType] = None) -> List[str]:
        query = (
            self.db.query(FcmDevice.token)
            .join(FcmUserSubscription, FcmUserSubscription.token_id == FcmDevice.token_id)
            .filter(
                FcmDevice.status == DeviceStatus.ACTIVE,
                FcmUserSubscription.status == SubscriptionStatus.ACTIVE,
                FcmUserSubscription.user_id == user_id,
            )
        )
        if user_type is not None:
            query = query.filter(FcmUserSubscription.user_type == user_type)
        return self._unique(token for (token,) in query.order_by(FcmDevice.token_id.asc()).all())

    def tokens_for_user_type(self, user_type: UserType) -> List[str]:
        query = (
            self.db.query(FcmDevice.token)
            .join(FcmUserSubscription, FcmUserSubscription.token_id == FcmDevice.token_id)
            .filter(
                FcmDevice.status == DeviceStatus.ACTIVE,
                FcmUserSubscription.status == SubscriptionStatus.ACTIVE,
                FcmUserSubscription.user_type == user_type,
            )
        )
        return self._unique(token for (token,) in query.order_by(FcmDevice.token_id.asc()).all())

    def all_active_tokens(self) -> List[str]:
        query = (
            self.db.query(FcmDevice.token)
            .filter(FcmDevice.status == DeviceStatus.ACTIVE)
            .order_by(FcmDevice.token_id.asc())
        )
        return self._unique(token for (token,) in query.all())

    # -------------------------------------------------
    # Cleanup
    # -------------------------------------------------
    def remove_tokens(self, tokens: Iterable[str], reason: str = "invalid_token") -> int:
        """
        Delete dead tokens together with their subscriptions.
        Returns count of device rows removed.
        """
        token_list = [t for t in tokens if t]
        if not token_list:
            return 0

        rows = (
            self.db.query(FcmDevice)
            .filter(FcmDevice.token.in_(token_list))
            .all()
        )
        for row in rows:
            self._log_cleanup(row.token, reason, device_id=row.device_id)
            self.db.delete(row)

        if rows:
            try:
                self.db.commit()
            except Exception as e:
                logger.error(f"[FCM] Failed to commit token cleanup: {e}")
                self.db.rollback()
                return 0

        return len(rows)

    def deactivate_token(
        self,
        old_token: str,
        device_id: Optional[str] = None,
        user_id: Optional[str] = None,
        reason: str = "token_refresh",
    ) -> int:
        """Mark a superseded token inactive; its subscriptions stop receiving."""
        rows = (
            self.db.query(FcmDevice)
            .filter(FcmDevice.token == old_token)
            .all()
        )
        for row in rows:
            row.status = DeviceStatus.INACTIVE
            for subscription in row.subscriptions:
                if user_id is None or subscription.user_id == user_id:
                    subscription.status = SubscriptionStatus.INACTIVE

        self._log_cleanup(old_token, reason, device_id=device_id, user_id=user_id)
        self.db.flush()
        return len(rows)

    def prune_stale_tokens(self, cutoff: datetime) -> int:
        """
        Delete devices that are no longer active and were not touched since cutoff,
        and subscriptions whose last activity predates cutoff.
        Returns count of removed rows (devices + subscriptions).
        """
        removed = 0

        stale_subscriptions = (
            self.db.query(FcmUserSubscription)
            .filter(FcmUserSubscription.last_active < cutoff)
            .all()
        )
        for subscription in stale_subscriptions:
            self.db.delete(subscription)
            removed += 1
        self.db.flush()

        stale_devices = (
            self.db.query(FcmDevice)
            .filter(
                FcmDevice.status != DeviceStatus.ACTIVE,
                FcmDevice.updated_at < cutoff,
            )
            .all()
        )
        for device in stale_devices:
            self._log_cleanup(device.token, "stale", device_id=device.device_id)
            self.db.delete(device)
            removed += 1

        self.db.flush()
        return removed
