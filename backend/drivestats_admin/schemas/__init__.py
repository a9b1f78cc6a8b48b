"""Pydantic schemas for API request/response models."""
from .push import (
    SendPushRequest,
    SendPushResponse,
    RegisterDeviceRequest,
    UnregisterDeviceRequest,
    SuccessResponse,
    DeviceCountResponse,
    NotificationPreferencesResponse,
    NotificationLogResponse,
)

__all__ = [
    "SendPushRequest",
    "SendPushResponse",
    "RegisterDeviceRequest",
    "UnregisterDeviceRequest",
    "SuccessResponse",
    "DeviceCountResponse",
    "NotificationPreferencesResponse",
    "NotificationLogResponse",
]
