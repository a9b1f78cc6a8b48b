"""Builds APNs notifications from logical payloads."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .push_types import NotificationPayload

DEFAULT_SOUND = "default"


@dataclass
class ApnsNotification:
    """A provider-ready notification, independent of the recipient token."""
    title: str
    body: str
    topic: str
    sound: str = DEFAULT_SOUND
    badge: Optional[int] = None
    content_available: bool = True
    mutable_content: bool = True
    custom: Dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict:
        """Render the JSON body sent to APNs."""
        aps: Dict[str, Any] = {
            "alert": {"title": self.title, "body": self.body},
            "sound": self.sound,
        }
        # Absent badge leaves the app icon unchanged; 0 clears it
        if self.badge is not None:
            aps["badge"] = self.badge
        if self.content_available:
            aps["content-available"] = 1
        if self.mutable_content:
            aps["mutable-content"] = 1

        message = dict(self.custom)
        message["aps"] = aps
        return message


def compose_notification(payload: NotificationPayload, topic: str) -> ApnsNotification:
    """Map a payload onto an APNs notification for the configured bundle id."""
    return ApnsNotification(
        title=payload.title,
        body=payload.body,
        topic=topic,
        sound=payload.sound or DEFAULT_SOUND,
        badge=payload.badge,
        custom=dict(payload.data or {}),
    )
