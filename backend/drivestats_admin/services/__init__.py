"""Services for push notification dispatch and device registration."""
from .dispatcher import PushDispatcher
from .push_provider import ApnsProvider, get_push_provider
from .registration import DeviceRegistrationService

__all__ = ["PushDispatcher", "ApnsProvider", "get_push_provider", "DeviceRegistrationService"]
