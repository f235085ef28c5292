# sniket/schemas/notifications/notification_schema.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from sniket.models.fcm_user_subscription import UserType
from sniket.models.notification import (
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)


# -------------------------
# Create
# -------------------------
class NotificationCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Recipient account id")
    user_type: UserType = Field(..., description="Role the recipient acts in")
    type: NotificationType
    category: NotificationCategory = NotificationCategory.BUSINESS
    priority: NotificationPriority = NotificationPriority.MEDIUM
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=255)
    related_id: Optional[str] = None
    related_type: Optional[str] = None
    sender_id: Optional[str] = None
    sender_name: Optional[str] = None
    click_action: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PushResultSchema(BaseModel):
    success: bool
    success_count: int
    failure_count: int


# -------------------------
# Single Notification Item
# -------------------------
class NotificationItemSchema(BaseModel):
    notification_id: int
    user_id: str
    user_type: UserType
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    title: str
    message: str

    related_id: Optional[str] = None
    related_type: Optional[str] = None
    sender_id: Optional[str] = None
    sender_name: Optional[str] = None

    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationCreateResponse(BaseModel):
    success: bool
    status: int
    notification: NotificationItemSchema
    push_result: Optional[PushResultSchema] = None
    timeStamp: str
    path: str


# -------------------------
# List Response
# -------------------------
class NotificationListResponse(BaseModel):
    success: bool
    status: int

    notifications: List[NotificationItemSchema]

    page: int
    size: int
    total_count: int
    unread_count: int

    timeStamp: str
    path: str
