"""Push notification dispatch engine.

A dispatch runs as one sequence of awaited steps:

1. validate the request (raises ``InvalidPushRequest`` before any I/O)
2. resolve the target into active device tokens
3. compose the APNs notification
4. send it to all tokens in a single provider call
5. reconcile: one audit row per owned token, ``last_used_at`` for accepted
   tokens, deactivation for tokens APNs reports as permanently invalid

Reconciliation only starts once the provider has answered, so a transport
failure leaves the token store untouched. Per-token rejections never fail
the dispatch as a whole; they only show up in the ``failed`` count and in
the audit log.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..utils.db_utils import retry_on_lock
from .audit_log import AuditLog, STATUS_FAILED, STATUS_SENT
from .composer import compose_notification
from .push_provider import ApnsProvider, ProviderResponse
from .push_types import (
    DispatchOutcome,
    NotificationPayload,
    NotificationRequest,
    NotificationTarget,
    NotificationType,
    ResolvedTargets,
)
from .resolver import TargetResolver
from .token_store import TokenStore

logger = logging.getLogger(__name__)

# APNs reasons meaning the token will never work again
PERMANENT_FAILURE_REASONS = frozenset({
    "BadDeviceToken",
    "Unregistered",
    "DeviceTokenNotForTopic",
})

NO_DEVICE_TOKENS = "No device tokens found"
NO_ACTIVE_USERS = "No active users found"


def is_permanent_failure(reason: Optional[str]) -> bool:
    return reason in PERMANENT_FAILURE_REASONS


class PushDispatcher:
    """Sends notifications and keeps the token store and audit log in step with APNs."""

    def __init__(
        self,
        session: AsyncSession,
        provider: ApnsProvider,
        topic: Optional[str] = None,
    ):
        self.session = session
        self.provider = provider
        self.topic = topic if topic is not None else provider.topic
        self.token_store = TokenStore(session)
        self.audit_log = AuditLog(session)
        self.resolver = TargetResolver(self.token_store)

    async def dispatch(self, request: NotificationRequest) -> DispatchOutcome:
        """Send ``request`` and return aggregated counts.

        Raises:
            InvalidPushRequest: missing title/body, unknown type, or not exactly one target
        """
        request.validate()
        target = request.target
        logger.info(
            f"Sending {request.type.value} notification "
            f"(target={', '.join(target.modes())})"
        )

        try:
            resolved = await self.resolver.resolve(target)
        except Exception as e:
            logger.error(f"Failed to resolve device tokens: {e}")
            return DispatchOutcome.failure(f"Failed to resolve device tokens: {e}", e)

        if resolved.is_empty:
            message = NO_ACTIVE_USERS if target.broadcast else NO_DEVICE_TOKENS
            logger.warning(message)
            return DispatchOutcome.nobody(message)

        logger.info(f"Found {len(resolved.tokens)} device token(s)")
        notification = compose_notification(request.payload, self.topic)

        try:
            response = await self.provider.send(notification, resolved.tokens)
        except Exception as e:
            logger.error(f"Error sending notification: {e}")
            return DispatchOutcome.failure(str(e), e)

        sent = len(response.sent)
        failed = len(response.failed)
        logger.info(f"Push send results: {sent} sent, {failed} failed")

        try:
            await self._reconcile(request, resolved, response)
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to record push results: {e}")
            outcome = DispatchOutcome.failure(f"Failed to record push results: {e}", e)
            outcome.sent = sent
            outcome.failed = failed
            return outcome

        return DispatchOutcome(success=sent > 0, sent=sent, failed=failed)

    async def send_to_all(
        self,
        notification_type: NotificationType,
        payload: NotificationPayload,
    ) -> DispatchOutcome:
        """Broadcast to every active device token."""
        logger.info("Broadcasting notification to all users")
        return await self.dispatch(NotificationRequest(
            target=NotificationTarget.all_users(),
            payload=payload,
            type=notification_type,
        ))

    async def _reconcile(
        self,
        request: NotificationRequest,
        resolved: ResolvedTargets,
        response: ProviderResponse,
    ):
        failures = {failure.device: failure for failure in response.failed}
        accepted = {sent.device for sent in response.sent}
        used_tokens = []
        dead_tokens = []

        for token in resolved.tokens:
            owner = resolved.token_owners.get(token)
            if owner is None:
                continue

            failure = failures.get(token)
            if failure is None:
                self.audit_log.append(
                    user_id=owner.user_id,
                    device_token_id=owner.record_id,
                    notification_type=request.type,
                    payload=request.payload,
                    status=STATUS_SENT,
                )
                if token in accepted:
                    used_tokens.append(token)
                continue

            self.audit_log.append(
                user_id=owner.user_id,
                device_token_id=owner.record_id,
                notification_type=request.type,
                payload=request.payload,
                status=STATUS_FAILED,
                error_message=failure.reason or failure.error,
            )
            if is_permanent_failure(failure.reason):
                dead_tokens.append(token)
            else:
                logger.debug(
                    f"Keeping token {token[:16]}... active after transient failure "
                    f"({failure.reason or failure.error})"
                )

        if used_tokens:
            await self.token_store.mark_used(used_tokens, datetime.utcnow())

        if dead_tokens:
            logger.info(f"Deactivating {len(dead_tokens)} invalid token(s)")
            await self.token_store.deactivate(dead_tokens)

        await retry_on_lock(self.session.commit)
