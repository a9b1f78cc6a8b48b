"""Database models."""
from .device_token import DeviceToken
from .notification_log import NotificationLog
from .notification_preferences import NotificationPreferences

__all__ = ["DeviceToken", "NotificationLog", "NotificationPreferences"]
