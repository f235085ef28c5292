from datetime import datetime
from typing import Optional, Tuple

from fastapi import Request
from loguru import logger
from sqlalchemy.orm import Session

from sniket.core.security import internal_key_error
from sniket.domains.fcm.service.dispatch_service import DeliveryDispatcher, DispatchResult
from sniket.domains.notifications.exception import notification_error
from sniket.domains.notifications.repository.notification_repository import NotificationRepository
from sniket.models.fcm_user_subscription import UserType
from sniket.models.notification import Notification
from sniket.schemas.fcm.send_schema import SendRequest
from sniket.schemas.notifications.notification_schema import (
    NotificationCreateRequest,
    NotificationCreateResponse,
    NotificationItemSchema,
    NotificationListResponse,
    PushResultSchema,
)


class NotificationService:
    def __init__(self, db: Session, dispatcher: Optional[DeliveryDispatcher] = None):
        self.db = db
        self.repo = NotificationRepository(db)
        self.dispatcher = dispatcher or DeliveryDispatcher(db)

    # ============================
    # Create + push (business code entry point)
    # ============================
    def notify(self, body: NotificationCreateRequest) -> Tuple[Notification, Optional[DispatchResult]]:
        """
        Store the feed entry, then push it.
        The push is best-effort: a failed push is logged and never undoes the entry.
        """
        notif = self.repo.create_notification(
            user_id=body.user_id,
            user_type=body.user_type,
            type=body.type,
            category=body.category,
            priority=body.priority,
            title=body.title,
            message=body.message,
            related_id=body.related_id,
            related_type=body.related_type,
            sender_id=body.sender_id,
            sender_name=body.sender_name,
        )
        self.db.commit()
        self.db.refresh(notif)

        logger.info(
            f"[Notifications] Created {body.type.value} notification {notif.notification_id} "
            f"for {body.user_type.value} {body.user_id}"
        )

        push_data = dict(body.metadata)
        push_data.update({
            "type": body.type.value.lower(),
            "category": body.category.value,
            "priority": body.priority.value,
            "notificationId": notif.notification_id,
            "relatedId": body.related_id or "",
            "relatedType": body.related_type or "",
        })

        try:
            result = self.dispatcher.dispatch(
                SendRequest(
                    target_user_id=body.user_id,
                    target_user_type=body.user_type,
                    title=body.title,
                    body=body.message,
                    data=push_data,
                    click_action=body.click_action,
                )
            )
        except Exception as e:
            logger.error(f"[Notifications] Push for notification {notif.notification_id} failed: {e}")
            return notif, None

        return notif, result

    def create_notification(
        self,
        request: Request,
        authorization: Optional[str],
        body: NotificationCreateRequest,
    ):
        path = request.url.path

        err_code = internal_key_error(authorization, "NOTIF_CREATE")
        if err_code:
            return notification_error(err_code, path)

        try:
            notif, result = self.notify(body)
        except Exception as e:
            self.db.rollback()
            logger.error(f"[Notifications] Create failed: {e}")
            return notification_error("NOTIF_CREATE_500_1", path)

        push_result = None
        if result is not None:
            push_result = PushResultSchema(
                success=result.success,
                success_count=result.success_count,
                failure_count=result.failure_count,
            )

        return NotificationCreateResponse(
            success=True,
            status=201,
            notification=NotificationItemSchema.model_validate(notif),
            push_result=push_result,
            timeStamp=datetime.utcnow().isoformat(),
            path=path,
        )

    # ============================
    # Feed
    # ============================
    def get_notifications(
        self,
        request: Request,
        user_id: str,
        user_type: UserType,
        page: int,
        size: int,
        unread_only: bool = False,
    ) -> NotificationListResponse:
        items, total = self.repo.get_notifications(
            user_id=user_id,
            user_type=user_type,
            page=page,
            size=size,
            unread_only=unread_only,
        )

        return NotificationListResponse(
            success=True,
            status=200,
            notifications=[NotificationItemSchema.model_validate(n) for n in items],
            page=page,
            size=size,
            total_count=total,
            unread_count=self.repo.get_unread_count(user_id, user_type),
            timeStamp=datetime.utcnow().isoformat(),
            path=request.url.path,
        )

    # ============================
    # Mark read
    # ============================
    def mark_read(self, request: Request, notification_id: int):
        path = request.url.path

        notif = self.repo.get_notification_by_id(notification_id)
        if not notif:
            return notification_error("NOTIF_READ_404_1", path)

        outcome = self.repo.mark_as_read(notif)
        if outcome == "ALREADY_READ":
            return {
                "success": True,
                "status": 200,
                "message": "Already read",
                "notificationId": notification_id,
                "timeStamp": datetime.utcnow().isoformat(),
                "path": path
            }

        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"[Notifications] Mark read failed for {notification_id}: {e}")
            return notification_error("NOTIF_READ_500_1", path)

        return {
            "success": True,
            "status": 200,
            "message": "Marked as read",
            "notificationId": notification_id,
            "timeStamp": datetime.utcnow().isoformat(),
            "path": path
        }
