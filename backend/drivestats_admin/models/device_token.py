"""DeviceToken model - APNs device tokens registered by app installations."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean

from ..database import Base


class DeviceToken(Base):
    """A device registered for push notifications.

    Rows are never deleted; dead tokens are deactivated so the audit log keeps
    pointing at them.
    """

    __tablename__ = "device_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_token = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    device_type = Column(String, default="ios")
    device_name = Column(String, nullable=True)
    app_version = Column(String, nullable=True)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
