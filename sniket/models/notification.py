import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String
from sqlalchemy.sql import func

from sniket.models.base import Base
from sniket.models.fcm_user_subscription import UserType


class NotificationType(enum.Enum):
    MESSAGE = "MESSAGE"
    BOOKING = "BOOKING"
    OFFER = "OFFER"
    PAYMENT = "PAYMENT"
    SYSTEM = "SYSTEM"


class NotificationCategory(enum.Enum):
    BUSINESS = "business"
    CHAT = "chat"


class NotificationPriority(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Notification(Base):
    __tablename__ = "notifications"

    notification_id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(String(128), nullable=False, index=True)
    user_type = Column(Enum(UserType), nullable=False)

    type = Column(Enum(NotificationType), nullable=False)
    category = Column(Enum(NotificationCategory), nullable=False, default=NotificationCategory.BUSINESS)
    priority = Column(Enum(NotificationPriority), nullable=False, default=NotificationPriority.MEDIUM)
    title = Column(String(100), nullable=False)
    message = Column(String(255), nullable=False)

    # booking / offer / payment the notification points at
    related_id = Column(String(128), nullable=True)
    related_type = Column(String(32), nullable=True)

    sender_id = Column(String(128), nullable=True)
    sender_name = Column(String(255), nullable=True)

    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())
