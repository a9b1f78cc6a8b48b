"""APNs provider client used by the push dispatcher."""
import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Optional, List

from ..config import Settings, settings
from ..exceptions import ProviderNotConfigured, ProviderTransportError
from .composer import ApnsNotification

logger = logging.getLogger(__name__)


@dataclass
class PushConfig:
    """APNs configuration."""
    enabled: bool = False
    key_path: str = ""  # Path to .p8 key file
    key_id: str = ""
    team_id: str = ""
    bundle_id: str = ""
    use_sandbox: bool = True  # Use sandbox for development
    max_connections: int = 10

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "PushConfig":
        return cls(
            enabled=app_settings.push_enabled,
            key_path=app_settings.apns_key_path,
            key_id=app_settings.apns_key_id,
            team_id=app_settings.apns_team_id,
            bundle_id=app_settings.apns_bundle_id,
            use_sandbox=not app_settings.apns_production,
            max_connections=app_settings.apns_max_connections,
        )

    @property
    def is_complete(self) -> bool:
        return all([self.key_path, self.key_id, self.team_id, self.bundle_id])


@dataclass
class SentDevice:
    device: str


@dataclass
class FailedDevice:
    """A token APNs did not accept.

    ``reason`` is the APNs rejection reason (BadDeviceToken, TooManyRequests, ...).
    It is None when the request for this token raised instead of returning.
    """
    device: str
    reason: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ProviderResponse:
    sent: List[SentDevice] = field(default_factory=list)
    failed: List[FailedDevice] = field(default_factory=list)


def _load_aioapns():
    try:
        import aioapns
    except ImportError as e:
        raise ProviderNotConfigured("aioapns is not installed") from e
    return aioapns


class ApnsProvider:
    """Sends one notification to a batch of tokens via APNs.

    The aioapns client holds HTTP/2 connections and a signed JWT, so it is
    built once on first use and reused until ``shutdown()``.
    """

    def __init__(self, config: Optional[PushConfig] = None):
        self._config: Optional[PushConfig] = config
        self._client = None

    @property
    def config(self) -> Optional[PushConfig]:
        return self._config

    @property
    def topic(self) -> str:
        return self._config.bundle_id if self._config else ""

    @property
    def enabled(self) -> bool:
        return bool(self._config and self._config.enabled)

    def configure(self, config: PushConfig):
        """Configure the APNs client. The connection is opened lazily."""
        self._config = config
        self._client = None  # Reset client to force reconnection

        if not config.enabled:
            logger.info("Push notifications are disabled")
        elif not config.is_complete:
            logger.warning("Push notifications enabled but APNs not fully configured")

    def _get_client(self):
        if self._client is not None:
            return self._client

        if not self._config or not self._config.enabled:
            raise ProviderNotConfigured("Push notifications are disabled")
        if not self._config.is_complete:
            raise ProviderNotConfigured("APNs credentials are not fully configured")

        aioapns = _load_aioapns()
        try:
            self._client = aioapns.APNs(
                key=self._config.key_path,
                key_id=self._config.key_id,
                team_id=self._config.team_id,
                topic=self._config.bundle_id,
                use_sandbox=self._config.use_sandbox,
                max_connections=self._config.max_connections,
            )
        except Exception as e:
            logger.error(f"Failed to configure APNs client: {e}")
            raise ProviderNotConfigured(f"Failed to configure APNs client: {e}") from e

        logger.info(
            f"APNs client initialized (sandbox={self._config.use_sandbox}, "
            f"key_id={self._config.key_id}, team_id={self._config.team_id})"
        )
        return self._client

    async def send(self, notification: ApnsNotification, tokens: List[str]) -> ProviderResponse:
        """Send ``notification`` to every token and report per-token outcomes.

        Raises:
            ProviderNotConfigured: APNs is disabled or misconfigured
            ProviderTransportError: no request produced an APNs response
        """
        client = self._get_client()
        aioapns = _load_aioapns()
        message = notification.to_message()

        async def send_one(token: str):
            request = aioapns.NotificationRequest(
                device_token=token,
                message=message,
                push_type=aioapns.PushType.ALERT,
            )
            return await client.send_notification(request)

        results = await asyncio.gather(
            *(send_one(token) for token in tokens),
            return_exceptions=True,
        )

        response = ProviderResponse()
        errors = []
        for token, result in zip(tokens, results):
            if isinstance(result, BaseException):
                errors.append(result)
                response.failed.append(FailedDevice(device=token, error=str(result)))
            elif result.is_successful:
                response.sent.append(SentDevice(device=token))
            else:
                response.failed.append(FailedDevice(
                    device=token,
                    reason=result.description,
                    status=result.status,
                ))

        if tokens and len(errors) == len(tokens):
            raise ProviderTransportError(f"APNs request failed: {errors[0]}") from errors[0]

        return response

    async def shutdown(self):
        """Close APNs connections. Called from the application shutdown sequence."""
        client, self._client = self._client, None
        if client is None:
            return

        close = getattr(client.pool, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result
        logger.info("APNs client shut down")


# Global instance, configured at startup
push_provider = ApnsProvider()


def get_push_provider() -> ApnsProvider:
    """Dependency returning the shared provider, configuring it on first use."""
    if push_provider.config is None:
        push_provider.configure(PushConfig.from_settings(settings))
    return push_provider
