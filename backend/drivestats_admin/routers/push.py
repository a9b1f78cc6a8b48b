"""Push notification API endpoints: send, device registration, audit."""
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..exceptions import InvalidPushRequest
from ..schemas.push import (
    SendPushRequest,
    SendPushResponse,
    RegisterDeviceRequest,
    UnregisterDeviceRequest,
    SuccessResponse,
    DeviceCountResponse,
    NotificationPreferencesResponse,
    NotificationLogResponse,
)
from ..services.audit_log import AuditLog
from ..services.dispatcher import PushDispatcher
from ..services.push_provider import ApnsProvider, get_push_provider
from ..services.registration import DeviceRegistrationService
from ..services.token_store import TokenStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/push", tags=["push"])


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def get_dispatcher(
    db: AsyncSession = Depends(get_db),
    provider: ApnsProvider = Depends(get_push_provider),
) -> PushDispatcher:
    return PushDispatcher(db, provider)


async def get_registration_service(
    db: AsyncSession = Depends(get_db),
) -> DeviceRegistrationService:
    return DeviceRegistrationService(db)


@router.post("/send", response_model=SendPushResponse)
async def send_push(
    request: SendPushRequest,
    dispatcher: PushDispatcher = Depends(get_dispatcher),
):
    """Send a notification to one user, several users, or everyone (target="all")."""
    try:
        outcome = await dispatcher.dispatch(request.to_notification_request())
    except InvalidPushRequest as e:
        logger.warning(f"Rejected push request: {e}")
        return error_response(str(e), 400)

    if outcome.success:
        return SendPushResponse(
            success=True,
            sent=outcome.sent,
            failed=outcome.failed,
            message=f"Notification sent to {outcome.sent} device(s)",
        )

    if outcome.no_recipients:
        return error_response(outcome.message, 404)

    return error_response(outcome.message or "Failed to send notification", 500)


@router.post("/register", response_model=SuccessResponse)
async def register_device(
    request: RegisterDeviceRequest,
    service: DeviceRegistrationService = Depends(get_registration_service),
):
    """Register a device token for a user.

    The app calls this on every launch; an existing token is reassigned to the
    caller and reactivated.
    """
    try:
        await service.register_device_token(
            user_id=request.user_id,
            device_token=request.device_token,
            device_name=request.device_name,
            app_version=request.app_version,
            device_type=request.device_type,
        )
    except InvalidPushRequest as e:
        return error_response(str(e), 400)
    except SQLAlchemyError as e:
        logger.error(f"Error registering device token: {e}")
        return error_response("Failed to register device token", 500)

    return SuccessResponse(success=True, message="Device token registered successfully")


@router.post("/unregister", response_model=SuccessResponse)
async def unregister_device(
    request: UnregisterDeviceRequest,
    service: DeviceRegistrationService = Depends(get_registration_service),
):
    """Deactivate a device token. The row is kept for the audit trail."""
    try:
        found = await service.unregister_device_token(request.device_token)
    except InvalidPushRequest as e:
        return error_response(str(e), 400)
    except SQLAlchemyError as e:
        logger.error(f"Error unregistering device token: {e}")
        return error_response("Failed to unregister device token", 500)

    message = "Device token unregistered" if found else "Device token was not registered"
    return SuccessResponse(success=True, message=message)


@router.get("/devices/count", response_model=DeviceCountResponse)
async def get_device_count(db: AsyncSession = Depends(get_db)):
    """Get count of registered devices (for admin dashboard)."""
    total, active = await TokenStore(db).count()
    return DeviceCountResponse(total=total, active=active)


@router.get("/preferences/{user_id}", response_model=NotificationPreferencesResponse)
async def get_preferences(
    user_id: str,
    service: DeviceRegistrationService = Depends(get_registration_service),
):
    """Get a user's notification preferences."""
    prefs = await service.get_preferences(user_id)
    if prefs is None:
        return error_response("Notification preferences not found", 404)
    return NotificationPreferencesResponse.model_validate(prefs)


@router.get("/logs", response_model=List[NotificationLogResponse])
async def list_notification_logs(
    user_id: Optional[str] = None,
    status: Optional[Literal["sent", "failed"]] = None,
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """List recent send attempts, newest first, for support triage."""
    entries = await AuditLog(db).recent(user_id=user_id, status=status, limit=limit)
    return [NotificationLogResponse.model_validate(entry) for entry in entries]
