"""Append-only audit log of push sends."""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import NotificationLog
from .push_types import NotificationPayload, NotificationType

logger = logging.getLogger(__name__)

STATUS_SENT = "sent"
STATUS_FAILED = "failed"


class AuditLog:
    """Writes ``notification_logs`` rows. Entries are never updated or deleted."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def append(
        self,
        user_id: str,
        device_token_id: Optional[int],
        notification_type: NotificationType,
        payload: NotificationPayload,
        status: str,
        error_message: Optional[str] = None,
    ) -> NotificationLog:
        entry = NotificationLog(
            user_id=user_id,
            device_token_id=device_token_id,
            notification_type=NotificationType(notification_type).value,
            title=payload.title,
            body=payload.body,
            data=dict(payload.data or {}),
            status=status,
            error_message=error_message,
        )
        self.session.add(entry)
        return entry

    async def recent(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
    ) -> List[NotificationLog]:
        """Newest entries first, optionally filtered by user and status."""
        query = select(NotificationLog)
        if user_id:
            query = query.where(NotificationLog.user_id == user_id)
        if status:
            query = query.where(NotificationLog.status == status)

        result = await self.session.execute(
            query.order_by(NotificationLog.created_at.desc(), NotificationLog.id.desc()).limit(limit)
        )
        return list(result.scalars().all())
