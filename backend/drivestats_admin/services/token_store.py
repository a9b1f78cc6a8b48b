"""Device token and notification preference persistence."""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import DeviceToken, NotificationPreferences

logger = logging.getLogger(__name__)

# Keeps IN (...) lists under the bind-parameter limits of SQLite and asyncpg
UPDATE_CHUNK_SIZE = 500


def _chunks(items: List[str], size: int = UPDATE_CHUNK_SIZE):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _dialect_insert(session: AsyncSession):
    """The INSERT construct supporting ON CONFLICT for the bound database."""
    return pg_insert if session.bind.dialect.name == "postgresql" else sqlite_insert


class TokenStore:
    """Reads and writes ``device_tokens`` rows. Callers own the commit."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, device_token: str) -> Optional[DeviceToken]:
        result = await self.session.execute(
            select(DeviceToken).where(DeviceToken.device_token == device_token)
        )
        return result.scalar_one_or_none()

    async def find_active(
        self,
        user_id: Optional[str] = None,
        user_ids: Optional[Iterable[str]] = None,
    ) -> List[DeviceToken]:
        """Active tokens for one user, a set of users, or everyone if neither is given."""
        query = select(DeviceToken).where(DeviceToken.is_active.is_(True))
        if user_id is not None:
            query = query.where(DeviceToken.user_id == user_id)
        elif user_ids is not None:
            query = query.where(DeviceToken.user_id.in_(list(user_ids)))

        result = await self.session.execute(query.order_by(DeviceToken.id))
        return list(result.scalars().all())

    async def register(
        self,
        user_id: str,
        device_token: str,
        device_name: Optional[str] = None,
        app_version: Optional[str] = None,
        device_type: Optional[str] = None,
    ) -> DeviceToken:
        """Insert a token, or reassign and reactivate it if it is already known.

        A single INSERT ... ON CONFLICT, so two first registrations of the same
        token racing each other both succeed and leave one row.
        """
        now = datetime.utcnow()
        statement = _dialect_insert(self.session)(DeviceToken).values(
            user_id=user_id,
            device_token=device_token,
            device_type=device_type or "ios",
            device_name=device_name or None,
            app_version=app_version or None,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        # Omitted descriptive fields keep their stored values
        statement = statement.on_conflict_do_update(
            index_elements=["device_token"],
            set_={
                "user_id": statement.excluded.user_id,
                "is_active": True,
                "last_used_at": now,
                "device_name": func.coalesce(device_name or None, DeviceToken.device_name),
                "app_version": func.coalesce(app_version or None, DeviceToken.app_version),
                "device_type": func.coalesce(device_type or None, DeviceToken.device_type),
                "updated_at": now,
            },
        )
        await self.session.execute(statement)

        result = await self.session.execute(
            select(DeviceToken)
            .where(DeviceToken.device_token == device_token)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def mark_used(self, device_tokens: List[str], when: Optional[datetime] = None):
        when = when or datetime.utcnow()
        for chunk in _chunks(device_tokens):
            await self.session.execute(
                update(DeviceToken)
                .where(DeviceToken.device_token.in_(chunk))
                .values(last_used_at=when)
            )

    async def deactivate(self, device_tokens: List[str]):
        for chunk in _chunks(device_tokens):
            await self.session.execute(
                update(DeviceToken)
                .where(DeviceToken.device_token.in_(chunk))
                .values(is_active=False, updated_at=datetime.utcnow())
            )

    async def count(self) -> Tuple[int, int]:
        """Return (total, active) device counts."""
        total_result = await self.session.execute(select(func.count(DeviceToken.id)))
        active_result = await self.session.execute(
            select(func.count(DeviceToken.id)).where(DeviceToken.is_active.is_(True))
        )
        return (total_result.scalar() or 0, active_result.scalar() or 0)


class PreferencesStore:
    """Reads and lazily creates ``notification_preferences`` rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> Optional[NotificationPreferences]:
        result = await self.session.execute(
            select(NotificationPreferences).where(NotificationPreferences.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def ensure_default(self, user_id: str):
        """Create an all-enabled row for ``user_id`` unless one exists."""
        now = datetime.utcnow()
        statement = _dialect_insert(self.session)(NotificationPreferences).values(
            user_id=user_id,
            enable_badge_notifications=True,
            enable_night_driving_alerts=True,
            enable_drive_reminders=True,
            enable_announcements=True,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_nothing(index_elements=["user_id"])
        await self.session.execute(statement)
