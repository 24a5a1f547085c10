"""
Notification Schemas
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from enum import Enum

from pydantic import BaseModel, Field


class NotificationFilter(str, Enum):
    ALL = "all"
    UNREAD = "unread"


class TestNotificationKind(str, Enum):
    EMAIL = "email"
    INAPP = "inapp"
    BOTH = "both"


# ============================================================
# Requests
# ============================================================

class NotificationSettingsUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    in_app_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None


class DataExportRequest(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)


class TestNotificationRequest(BaseModel):
    type: Optional[TestNotificationKind] = None


# ============================================================
# Responses
# ============================================================

class NotificationResponse(BaseModel):
    id: UUID
    recipient_id: UUID
    recipient_role: str
    type: str
    title: str
    description: Optional[str] = None
    quiz_id: Optional[UUID] = None
    instructor: Optional[str] = None
    due_label: Optional[str] = None
    status: str
    score: Optional[str] = None
    is_read: bool
    data: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int
    message: Optional[str] = None


class UnreadCountResponse(BaseModel):
    count: int


class NotificationSettingsResponse(BaseModel):
    email_notifications: bool
    in_app_notifications: bool
    sms_notifications: bool

    class Config:
        from_attributes = True


class TestNotificationResponse(BaseModel):
    test_type: str
    email_notifications_enabled: bool
    in_app_notifications_enabled: bool
    in_app_notification_created: Optional[bool] = None
    in_app_notification_id: Optional[UUID] = None
    email_sent: Optional[bool] = None
    messages: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class CleanupDuplicatesResponse(BaseModel):
    success: bool = True
    deleted_count: int
