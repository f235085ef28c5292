import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from sniket.core.config import settings
from sniket.core.firebase import send_push_notification_to_multiple
from sniket.domains.fcm.repository.fcm_repository import FcmRepository
from sniket.domains.fcm.service.targeting_service import resolve_target_tokens
from sniket.models.fcm_user_subscription import UserType
from sniket.schemas.fcm.send_schema import SendRequest


@dataclass
class DispatchResult:
    success_count: int = 0
    failure_count: int = 0
    invalid_tokens: List[str] = field(default_factory=list)
    target_count: int = 0

    @property
    def success(self) -> bool:
        # partial delivery still counts; "nobody to notify" too
        return self.failure_count == 0 or self.success_count > 0


class DeliveryDispatcher:
    """
    Resolve targets, hand tokens to FCM, and feed dead tokens back to the registry.
    Never raises: send-time failures come back as counts.
    """

    def __init__(self, db: Session, sender: Optional[Callable[..., Dict[str, Any]]] = None):
        self.db = db
        self.repo = FcmRepository(db)
        self.sender = sender

    @staticmethod
    def build_data(
        target_user_id: Optional[str],
        target_user_type: Optional[UserType],
        data: Optional[Dict[str, Any]],
        click_action: str,
    ) -> Dict[str, str]:
        """
        Caller data first, then the routing keys the client-side filter reads.
        Absent targets go out as "" (FCM data values must be strings).
        """
        payload = {k: str(v) for k, v in (data or {}).items() if v is not None}
        payload.update({
            "userId": target_user_id or "",
            "userType": target_user_type.value if target_user_type else "",
            "clickAction": click_action,
            "timestamp": str(int(time.time() * 1000)),
            "source": "sniket-fcm",
        })
        return payload

    def dispatch(self, request: SendRequest) -> DispatchResult:
        tokens = resolve_target_tokens(
            self.repo,
            target_user_id=request.target_user_id,
            target_user_type=request.target_user_type,
        )

        if not tokens:
            logger.info("[FCM Send] No active devices for target, nothing to send")
            return DispatchResult()

        click_action = request.click_action or settings.FCM_DEFAULT_CLICK_ACTION
        target_label = request.target_user_id or (
            request.target_user_type.value if request.target_user_type else "broadcast"
        )
        sender = self.sender or send_push_notification_to_multiple

        logger.info(f"[FCM Send] Sending '{request.title[:50]}' to {len(tokens)} device(s)")
        try:
            result = sender(
                fcm_tokens=tokens,
                title=request.title,
                body=request.body,
                data=self.build_data(
                    request.target_user_id,
                    request.target_user_type,
                    request.data,
                    click_action,
                ),
                click_action=click_action,
                image_url=request.image_url,
                tag=f"sniket_{target_label}_{int(time.time() * 1000)}",
            )
        except Exception as e:
            logger.error(f"[FCM Send] Sender failed: {e}")
            return DispatchResult(failure_count=len(tokens), target_count=len(tokens))

        invalid_tokens = list(result.get("invalid_tokens") or [])
        if invalid_tokens:
            removed = self.repo.remove_tokens(invalid_tokens)
            logger.info(f"[FCM Send] Cleaned up {removed} invalid token(s)")

        dispatch_result = DispatchResult(
            success_count=result.get("success_count", 0),
            failure_count=result.get("failure_count", 0),
            invalid_tokens=invalid_tokens,
            target_count=len(tokens),
        )
        logger.info(
            f"[FCM Send] Results: {dispatch_result.success_count} success, "
            f"{dispatch_result.failure_count} failed"
        )
        return dispatch_result
