"""
Notification Endpoints

Endpoints:
----------
- GET    /notifications                      - List notifications (duplicates collapsed)
- GET    /notifications/unread-count         - Get unread count
- GET    /notifications/settings             - Get notification preferences
- PUT    /notifications/settings             - Update notification preferences
- POST   /notifications/test                 - Send test notifications
- POST   /notifications/data-export          - Record a finished data export (teachers and admins)
- POST   /notifications/cleanup-duplicates   - Delete duplicate assignment notifications
- PATCH  /notifications/mark-all-read        - Mark all as read
- PATCH  /notifications/{id}/read            - Mark one as read
- DELETE /notifications/{id}                 - Delete one
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quizflow.db.database import get_db
from quizflow.api.deps import get_current_user, require_teacher, get_request_clock, get_email_sender
from quizflow.core.clock import Clock
from quizflow.models.user import User
from quizflow.schemas.notification import (
    CleanupDuplicatesResponse,
    DataExportRequest,
    MessageResponse,
    NotificationFilter,
    NotificationListResponse,
    NotificationResponse,
    NotificationSettingsResponse,
    NotificationSettingsUpdate,
    TestNotificationRequest,
    TestNotificationResponse,
    UnreadCountResponse,
)
from quizflow.services.notification_service import (
    EmailSender,
    NotificationNotFoundError,
    NotificationPermissionError,
    NotificationService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_request_clock),
    email_sender: EmailSender = Depends(get_email_sender),
) -> NotificationService:
    return NotificationService(db, clock=clock, email_sender=email_sender)


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications for the current user",
)
async def list_notifications(
    filter: NotificationFilter = Query(NotificationFilter.ALL),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    preferences = await service.get_preferences(current_user.id)
    if not preferences.in_app_notifications:
        return NotificationListResponse(
            notifications=[],
            unread_count=0,
            message="In-app notifications are disabled",
        )

    notifications, unread = await service.list_notifications(
        current_user, unread_only=filter == NotificationFilter.UNREAD
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread,
    )


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Get unread count")
async def unread_count(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return UnreadCountResponse(count=await service.unread_count(current_user))


# ============================================================
# SETTINGS
# ============================================================

@router.get("/settings", response_model=NotificationSettingsResponse)
async def get_settings(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return NotificationSettingsResponse.model_validate(await service.get_settings(current_user))


@router.put("/settings", response_model=NotificationSettingsResponse)
async def update_settings(
    request: NotificationSettingsUpdate,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    snapshot = await service.update_settings(current_user, **request.model_dump())
    return NotificationSettingsResponse.model_validate(snapshot)


@router.post("/test", response_model=TestNotificationResponse, summary="Send test notifications")
async def test_notifications(
    request: TestNotificationRequest,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    kind = request.type.value if request.type else None
    report = await service.send_test_notifications(current_user, kind)
    return TestNotificationResponse.model_validate(report)


# ============================================================
# TEACHER ACTIONS
# ============================================================

@router.post(
    "/data-export",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def data_export(
    request: DataExportRequest,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        notification = await service.create_data_export_notification(current_user, request.file_name)
    except NotificationPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return NotificationResponse.model_validate(notification)


@router.post("/cleanup-duplicates", response_model=CleanupDuplicatesResponse)
async def cleanup_duplicates(
    current_user: User = Depends(require_teacher),
    service: NotificationService = Depends(get_notification_service),
):
    deleted = await service.cleanup_duplicate_notifications()
    return CleanupDuplicatesResponse(deleted_count=deleted)


# ============================================================
# READ STATE
# ============================================================

@router.patch("/mark-all-read", response_model=MessageResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    await service.mark_all_read(current_user)
    return MessageResponse(message="All notifications marked as read")


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        notification = await service.mark_as_read(current_user, notification_id)
    except NotificationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        await service.delete_notification(current_user, notification_id)
    except NotificationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return MessageResponse(message="Notification deleted")
