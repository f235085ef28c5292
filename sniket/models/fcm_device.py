import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Integer,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from sniket.models.base import Base


class DeviceStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    INVALID = "invalid"


class FcmDevice(Base):
    """
    One push token per browser installation.
    Several logical users (roles) may subscribe through the same row.
    """

    __tablename__ = "fcm_devices"

    token_id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(512), nullable=False, unique=True)
    device_id = Column(String(128), nullable=True, index=True)
    browser = Column(String(64), nullable=True)
    platform = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    status = Column(Enum(DeviceStatus), nullable=False, default=DeviceStatus.ACTIVE)

    registered_at = Column(DateTime, nullable=True)
    last_validated = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    subscriptions = relationship(
        "FcmUserSubscription",
        back_populates="device",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
