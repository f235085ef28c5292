from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from sniket.models.fcm_user_subscription import UserType
from sniket.models.notification import Notification


class NotificationRepository:
    def __init__(self, db: Session):
        self.db = db

    # ============================
    # Feed query
    # ============================
    def get_notifications(
        self,
        user_id: str,
        user_type: UserType,
        page: int,
        size: int,
        unread_only: bool = False,
    ) -> Tuple[List[Notification], int]:
        query = (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.user_type == user_type,
            )
        )

        if unread_only:
            query = query.filter(Notification.is_read.is_(False))

        query = query.order_by(Notification.created_at.desc(), Notification.notification_id.desc())

        total = query.count()
        items = query.offset(page * size).limit(size).all()

        return items, total

    def get_unread_count(self, user_id: str, user_type: UserType) -> int:
        return (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.user_type == user_type,
                Notification.is_read.is_(False),
            )
            .count()
        )

    # ============================
    # Single lookup
    # ============================
    def get_notification_by_id(self, notification_id: int) -> Optional[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.notification_id == notification_id)
            .first()
        )

    # ============================
    # Mark read
    # ============================
    def mark_as_read(self, notification: Notification) -> str:
        if notification.is_read:
            return "ALREADY_READ"

        notification.is_read = True
        notification.read_at = datetime.utcnow()
        return "OK"

    # ============================
    # Create
    # ============================
    def create_notification(self, **fields) -> Notification:
        notif = Notification(**fields)
        self.db.add(notif)
        self.db.flush()
        return notif
