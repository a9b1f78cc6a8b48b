"""Device registration and notification preference checks."""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import InvalidPushRequest
from ..models import DeviceToken, NotificationPreferences
from ..utils.db_utils import retry_on_lock
from .push_types import NotificationType
from .token_store import PreferencesStore, TokenStore

logger = logging.getLogger(__name__)

# Preference column consulted for each category; custom has none
PREFERENCE_FIELDS = {
    NotificationType.BADGE_EARNED: "enable_badge_notifications",
    NotificationType.NIGHT_DRIVING: "enable_night_driving_alerts",
    NotificationType.DRIVE_REMINDER: "enable_drive_reminders",
    NotificationType.ANNOUNCEMENT: "enable_announcements",
}


class DeviceRegistrationService:
    """Registers device tokens and answers whether a user wants a category."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.token_store = TokenStore(session)
        self.preferences = PreferencesStore(session)

    async def register_device_token(
        self,
        user_id: str,
        device_token: str,
        device_name: Optional[str] = None,
        app_version: Optional[str] = None,
        device_type: Optional[str] = None,
    ) -> DeviceToken:
        """Upsert a device token for ``user_id`` and make sure preferences exist.

        A token that is already registered moves to ``user_id`` and is
        reactivated; there is never more than one row per token.
        """
        if not user_id or not device_token:
            raise InvalidPushRequest("userId and deviceToken are required")

        logger.info(f"Registering device token {device_token[:16]}... for user {user_id}")
        try:
            record = await self.token_store.register(
                user_id=user_id,
                device_token=device_token,
                device_name=device_name,
                app_version=app_version,
                device_type=device_type,
            )
            await self.preferences.ensure_default(user_id)
            await retry_on_lock(self.session.commit)
        except SQLAlchemyError:
            await self.session.rollback()
            raise

        return record

    async def unregister_device_token(self, device_token: str) -> bool:
        """Deactivate a token. Returns False if the token was never registered."""
        if not device_token:
            raise InvalidPushRequest("deviceToken is required")

        existing = await self.token_store.get(device_token)
        if existing is None:
            logger.info(f"Unregister for unknown device token {device_token[:16]}...")
            return False

        await self.token_store.deactivate([device_token])
        await retry_on_lock(self.session.commit)
        logger.info(f"Device token unregistered: {device_token[:16]}...")
        return True

    async def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        return await self.preferences.get(user_id)

    async def should_send(self, user_id: str, notification_type: NotificationType) -> bool:
        """Advisory preference gate. Missing rows, unknown types and read errors allow the send."""
        try:
            notification_type = NotificationType(notification_type)
        except ValueError:
            logger.warning(f"No preference applies to notification type {notification_type!r}")
            return True

        field = PREFERENCE_FIELDS.get(notification_type)
        if field is None:
            return True

        try:
            prefs = await self.preferences.get(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching notification preferences for {user_id}: {e}")
            return True

        if prefs is None:
            return True
        return bool(getattr(prefs, field))
