from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from sniket.models.base import Base


class FcmCleanupLog(Base):
    """Audit trail for tokens that were rotated out, invalidated or pruned."""

    __tablename__ = "fcm_cleanup_logs"

    log_id = Column(Integer, primary_key=True, autoincrement=True)
    # first 20 chars only
    token_prefix = Column(String(32), nullable=False)
    device_id = Column(String(128), nullable=True)
    user_id = Column(String(128), nullable=True)
    reason = Column(String(32), nullable=False)
    cleaned_at = Column(DateTime, nullable=False, server_default=func.now())
