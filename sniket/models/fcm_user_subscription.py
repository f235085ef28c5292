import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from sniket.models.base import Base


class UserType(str, enum.Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"


class SubscriptionStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class FcmUserSubscription(Base):
    """
    A logical user acting in one role on one device token.
    (token_id, user_id, user_type) is unique; re-registering refreshes last_active.
    """

    __tablename__ = "fcm_user_subscriptions"

    subscription_id = Column(Integer, primary_key=True, autoincrement=True)
    token_id = Column(
        Integer,
        ForeignKey("fcm_devices.token_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(String(128), nullable=False, index=True)
    user_type = Column(Enum(UserType), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)

    active_session_id = Column(String(128), nullable=True)
    last_active = Column(DateTime, nullable=True)
    status = Column(Enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.ACTIVE)

    subscribed_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    device = relationship("FcmDevice", back_populates="subscriptions")

    __table_args__ = (
        UniqueConstraint("token_id", "user_id", "user_type", name="uq_token_user_role"),
    )
