from typing import Optional

from fastapi import Request
from loguru import logger
from sqlalchemy.orm import Session

from sniket.core.security import internal_key_error
from sniket.domains.fcm.exception import fcm_error
from sniket.domains.fcm.service.dispatch_service import DeliveryDispatcher
from sniket.schemas.fcm.send_schema import SendRequest, SendResponse, SendResults


class FcmSendService:
    def __init__(self, db: Session):
        self.db = db
        self.dispatcher = DeliveryDispatcher(db)

    def send(self, request: Request, authorization: Optional[str], body: SendRequest):
        path = request.url.path

        err_code = internal_key_error(authorization, "FCM_SEND")
        if err_code:
            return fcm_error(err_code, path)

        try:
            result = self.dispatcher.dispatch(body)
        except Exception as e:
            # resolution hit the database; the sender itself never raises
            logger.error(f"[FCM Send] Dispatch failed: {e}")
            return fcm_error("FCM_SEND_500_1", path)

        results = SendResults(
            success_count=result.success_count,
            failure_count=result.failure_count,
            invalid_tokens=result.invalid_tokens,
        )

        if result.target_count == 0:
            message = "No active devices found for target criteria"
        else:
            message = f"Sent to {result.success_count}/{result.target_count} devices"

        return SendResponse(
            success=result.success,
            results=results,
            message=message,
            error=None if result.success else "delivery_failed",
        )
