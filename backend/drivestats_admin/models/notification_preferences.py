"""NotificationPreferences model - per-user category toggles."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean

from ..database import Base


class NotificationPreferences(Base):
    """Per-category opt-outs for a user. A missing row means everything is enabled."""

    __tablename__ = "notification_preferences"

    user_id = Column(String, primary_key=True)
    enable_badge_notifications = Column(Boolean, nullable=False, default=True)
    enable_night_driving_alerts = Column(Boolean, nullable=False, default=True)
    enable_drive_reminders = Column(Boolean, nullable=False, default=True)
    enable_announcements = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
