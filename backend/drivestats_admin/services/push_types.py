"""Request, target and outcome types for push dispatch."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..exceptions import InvalidPushRequest


class NotificationType(str, Enum):
    """Notification categories, used for preference checks and audit rows."""
    BADGE_EARNED = "badge_earned"
    NIGHT_DRIVING = "night_driving"
    DRIVE_REMINDER = "drive_reminder"
    ANNOUNCEMENT = "announcement"
    CUSTOM = "custom"


@dataclass
class NotificationPayload:
    """What the user sees. ``data`` is copied verbatim into the APNs payload."""
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    badge: Optional[int] = None
    sound: Optional[str] = None


@dataclass
class NotificationTarget:
    """Who receives a notification. Exactly one mode may be set."""
    user_id: Optional[str] = None
    user_ids: Optional[List[str]] = None
    broadcast: bool = False
    device_tokens: Optional[List[str]] = None

    @classmethod
    def user(cls, user_id: str) -> "NotificationTarget":
        return cls(user_id=user_id)

    @classmethod
    def users(cls, user_ids: List[str]) -> "NotificationTarget":
        return cls(user_ids=list(user_ids))

    @classmethod
    def all_users(cls) -> "NotificationTarget":
        return cls(broadcast=True)

    @classmethod
    def tokens(cls, device_tokens: List[str]) -> "NotificationTarget":
        return cls(device_tokens=list(device_tokens))

    def modes(self) -> List[str]:
        """Names of the target modes that are set; empty lists count as unset."""
        modes = []
        if self.user_id:
            modes.append("user_id")
        if self.user_ids:
            modes.append("user_ids")
        if self.broadcast:
            modes.append("all")
        if self.device_tokens:
            modes.append("device_tokens")
        return modes


@dataclass
class NotificationRequest:
    """A single dispatch request. Not persisted."""
    target: NotificationTarget
    payload: NotificationPayload
    type: NotificationType = NotificationType.CUSTOM

    def validate(self) -> None:
        """Raise InvalidPushRequest if the request cannot be dispatched."""
        if not self.payload.title or not self.payload.body:
            raise InvalidPushRequest("title and body are required")

        try:
            self.type = NotificationType(self.type)
        except ValueError:
            raise InvalidPushRequest(f"Unknown notification type: {self.type}") from None

        modes = self.target.modes()
        if not modes:
            raise InvalidPushRequest("Must specify userId, userIds, deviceTokens, or target=all")
        if len(modes) > 1:
            raise InvalidPushRequest(
                f"Only one target may be specified, got: {', '.join(modes)}"
            )


@dataclass
class TokenOwner:
    """Owner metadata for a resolved token, needed for reconciliation."""
    user_id: str
    record_id: int


@dataclass
class ResolvedTargets:
    """Concrete tokens for a target, plus owners for the tokens that have one."""
    tokens: List[str] = field(default_factory=list)
    token_owners: Dict[str, TokenOwner] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.tokens


@dataclass
class DispatchOutcome:
    """Aggregated result returned to callers of the dispatcher."""
    success: bool
    sent: int = 0
    failed: int = 0
    message: Optional[str] = None
    error: Optional[str] = None
    no_recipients: bool = False

    @classmethod
    def nobody(cls, message: str) -> "DispatchOutcome":
        return cls(success=False, message=message, no_recipients=True)

    @classmethod
    def failure(cls, message: str, error: Optional[BaseException] = None) -> "DispatchOutcome":
        return cls(
            success=False,
            message=message,
            error=type(error).__name__ if error is not None else None,
        )
