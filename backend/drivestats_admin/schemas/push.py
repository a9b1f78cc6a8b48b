"""Push notification schemas for API request/response models.

Request bodies come from the mobile app and the admin UI in camelCase;
snake_case field names are accepted as well.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

from ..exceptions import InvalidPushRequest
from ..services.push_types import (
    NotificationPayload,
    NotificationRequest,
    NotificationTarget,
    NotificationType,
)

BROADCAST_TARGET = "all"


class SendPushRequest(BaseModel):
    """Request to send a notification.

    ``target`` may be "all", a single user id, or a list of user ids.
    """
    target: Optional[Union[str, List[str]]] = None
    user_id: Optional[str] = Field(None, alias="userId")
    user_ids: Optional[List[str]] = Field(None, alias="userIds")
    device_tokens: Optional[List[str]] = Field(None, alias="deviceTokens")
    type: Optional[NotificationType] = None
    # title/body are checked by the dispatcher so a missing one is a 400, not a 422
    title: Optional[str] = None
    body: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    badge: Optional[int] = Field(None, ge=0)
    sound: Optional[str] = None

    class Config:
        populate_by_name = True

    def to_notification_request(self) -> NotificationRequest:
        target = NotificationTarget(
            user_id=self.user_id,
            user_ids=self.user_ids,
            device_tokens=self.device_tokens,
        )

        if self.target == BROADCAST_TARGET:
            target.broadcast = True
        elif isinstance(self.target, list):
            if target.user_ids:
                raise InvalidPushRequest("Only one target may be specified")
            target.user_ids = self.target
        elif self.target:
            if target.user_id:
                raise InvalidPushRequest("Only one target may be specified")
            target.user_id = self.target

        return NotificationRequest(
            target=target,
            payload=NotificationPayload(
                title=self.title or "",
                body=self.body or "",
                data=self.data or {},
                badge=self.badge,
                sound=self.sound,
            ),
            type=self.type or NotificationType.CUSTOM,
        )


class SendPushResponse(BaseModel):
    """Aggregated result of a send."""
    success: bool
    sent: int
    failed: int
    message: str


class RegisterDeviceRequest(BaseModel):
    """Request to register a device token for a user."""
    user_id: Optional[str] = Field(None, alias="userId")
    device_token: Optional[str] = Field(None, alias="deviceToken")
    device_name: Optional[str] = Field(None, alias="deviceName")
    app_version: Optional[str] = Field(None, alias="appVersion")
    device_type: Optional[str] = Field(None, alias="deviceType")

    class Config:
        populate_by_name = True


class UnregisterDeviceRequest(BaseModel):
    """Request to deactivate a device token."""
    device_token: Optional[str] = Field(None, alias="deviceToken")

    class Config:
        populate_by_name = True


class SuccessResponse(BaseModel):
    success: bool
    message: str


class DeviceCountResponse(BaseModel):
    """Registered device counts for the admin dashboard."""
    total: int
    active: int


class NotificationPreferencesResponse(BaseModel):
    user_id: str
    enable_badge_notifications: bool
    enable_night_driving_alerts: bool
    enable_drive_reminders: bool
    enable_announcements: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationLogResponse(BaseModel):
    """One audit log row."""
    id: int
    user_id: str
    device_token_id: Optional[int] = None
    notification_type: str
    title: str
    body: str
    data: Optional[Dict[str, Any]] = None
    status: str
    error_message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
