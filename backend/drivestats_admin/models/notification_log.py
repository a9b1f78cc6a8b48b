"""NotificationLog model - append-only record of push sends."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON

from ..database import Base


class NotificationLog(Base):
    """One row per (device token, dispatch) pair."""

    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    device_token_id = Column(Integer, ForeignKey("device_tokens.id"), nullable=True)
    notification_type = Column(String, nullable=False)  # badge_earned, night_driving, ...
    title = Column(String, nullable=False)
    body = Column(String, nullable=False)
    data = Column(JSON, default=dict)
    status = Column(String, nullable=False)  # sent, failed
    error_message = Column(String, nullable=True)  # APNs reason, e.g. BadDeviceToken
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
