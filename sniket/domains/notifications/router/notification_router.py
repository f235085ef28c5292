# sniket/domains/notifications/router/notification_router.py
from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from sniket.db import get_db
from sniket.domains.notifications.exception import NOTIF_CREATE_RESPONSES, NOTIF_READ_RESPONSES
from sniket.domains.notifications.service.notification_service import NotificationService
from sniket.models.fcm_user_subscription import UserType
from sniket.schemas.notifications.notification_schema import (
    NotificationCreateRequest,
    NotificationCreateResponse,
    NotificationListResponse,
)

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.post(
    "",
    summary="Create a notification and push it",
    description="Stores an in-app notification and sends the matching push to the recipient's devices.",
    status_code=201,
    response_model=NotificationCreateResponse,
    responses=NOTIF_CREATE_RESPONSES,
)
def create_notification(
    request: Request,
    body: NotificationCreateRequest,
    authorization: str | None = Header(None, description="Bearer <INTERNAL_API_KEY>"),
    db: Session = Depends(get_db)
):
    return NotificationService(db).create_notification(request, authorization, body)


@router.get(
    "",
    summary="List a user's notifications (newest first)",
    response_model=NotificationListResponse,
)
def get_notifications(
    request: Request,
    user_id: str = Query(..., min_length=1),
    user_type: UserType = Query(...),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    db: Session = Depends(get_db)
):
    return NotificationService(db).get_notifications(
        request=request,
        user_id=user_id,
        user_type=user_type,
        page=page,
        size=size,
        unread_only=unread_only,
    )


@router.patch(
    "/{notification_id}/read",
    summary="Mark a notification as read",
    responses=NOTIF_READ_RESPONSES,
)
def mark_notification_as_read(
    notification_id: int,
    request: Request,
    db: Session = Depends(get_db)
):
    return NotificationService(db).mark_read(request, notification_id)
