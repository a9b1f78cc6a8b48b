"""Resolves notification targets into concrete device tokens."""
import logging

from .push_types import NotificationTarget, ResolvedTargets, TokenOwner
from .token_store import TokenStore

logger = logging.getLogger(__name__)


class TargetResolver:
    """Turns a NotificationTarget into tokens plus the owners needed to reconcile them."""

    def __init__(self, token_store: TokenStore):
        self.token_store = token_store

    async def resolve(self, target: NotificationTarget) -> ResolvedTargets:
        if target.device_tokens:
            # Explicit tokens carry no owner, so they get no audit rows or liveness updates
            logger.warning(
                f"Resolving {len(target.device_tokens)} explicit device token(s) "
                "without owner metadata; results will not be reconciled"
            )
            return ResolvedTargets(tokens=list(dict.fromkeys(target.device_tokens)))

        if target.user_id:
            records = await self.token_store.find_active(user_id=target.user_id)
        elif target.user_ids:
            records = await self.token_store.find_active(user_ids=target.user_ids)
        elif target.broadcast:
            records = await self.token_store.find_active()
        else:
            return ResolvedTargets()

        resolved = ResolvedTargets()
        for record in records:
            if record.device_token in resolved.token_owners:
                continue
            resolved.tokens.append(record.device_token)
            resolved.token_owners[record.device_token] = TokenOwner(
                user_id=record.user_id,
                record_id=record.id,
            )

        logger.debug(f"Resolved {len(resolved.tokens)} active device token(s)")
        return resolved
