"""Notification endpoints.

Endpoints:
  GET     /api/notifications                   List (unread=true, limit) with the unread count
  POST    /api/notifications                   Create a notification
  PATCH   /api/notifications                   Mark one read/unread (or toggle), or all read
  DELETE  /api/notifications?id=               Delete one
  DELETE  /api/notifications?clearRead=true    Delete every read notification
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from mission_control.adapters.json_store import NotificationStore
from mission_control.api.dependencies import ClockDep, SettingsDep
from mission_control.api.schemas import (
    CountResponse,
    CreateNotificationRequest,
    NotificationListResponse,
    NotificationResponse,
    SuccessResponse,
    UpdateNotificationRequest,
    validate_records,
)
from mission_control.core.services import NotificationService
from mission_control.errors import ValidationFailedError

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _get_notification_service(settings: SettingsDep, clock: ClockDep) -> NotificationService:
    return NotificationService(NotificationStore(settings.notifications_path), clock)


NotificationServiceDep = Annotated[NotificationService, Depends(_get_notification_service)]


@router.get("", response_model=NotificationListResponse, summary="List notifications")
async def list_notifications(
    service: NotificationServiceDep,
    unread: Annotated[bool, Query()] = False,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> NotificationListResponse:
    notifications, unread_count = service.list_notifications(unread_only=unread, limit=limit)
    return NotificationListResponse(
        notifications=validate_records(NotificationResponse, notifications, "notification_record_invalid"),
        unread_count=unread_count,
    )


@router.post("", response_model=NotificationResponse, status_code=201, summary="Create a notification")
async def create_notification(
    request: CreateNotificationRequest, service: NotificationServiceDep
) -> NotificationResponse:
    return NotificationResponse(
        **service.create_notification(
            title=request.title,
            message=request.message,
            notification_type=request.type,
            link=request.link,
            metadata=request.metadata,
        )
    )


@router.patch("", summary="Mark notifications read or unread")
async def update_notification(
    request: UpdateNotificationRequest, service: NotificationServiceDep
) -> NotificationResponse | CountResponse:
    if request.mark_all_read:
        return CountResponse(count=service.mark_all_read())
    if not request.id:
        raise ValidationFailedError("Missing id")
    return NotificationResponse(**service.set_read(request.id, request.read))


@router.delete("", summary="Delete one notification or clear read ones")
async def delete_notifications(
    service: NotificationServiceDep,
    id: Annotated[str | None, Query()] = None,
    clear_read: Annotated[bool, Query(alias="clearRead")] = False,
) -> SuccessResponse | CountResponse:
    if clear_read:
        return CountResponse(count=service.clear_read())
    if not id:
        raise ValidationFailedError("Missing id")
    service.delete_notification(id)
    return SuccessResponse()
