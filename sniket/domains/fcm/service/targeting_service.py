from typing import List, Optional

from loguru import logger

from sniket.domains.fcm.repository.fcm_repository import FcmRepository
from sniket.models.fcm_user_subscription import UserType


def resolve_target_tokens(
    repo: FcmRepository,
    target_user_id: Optional[str] = None,
    target_user_type: Optional[UserType] = None,
) -> List[str]:
    """
    Translate a notification target into the device tokens to contact.

    - user id set: every token with a live subscription for that user
      (narrowed to target_user_type when both are given)
    - only user type set: every token with a live subscription of that role
    - neither: broadcast to every known active token

    A token is listed once even when several subscriptions on it match.
    """
    if target_user_id:
        tokens = repo.tokens_for_user(target_user_id, target_user_type)
        scope = f"user {target_user_id}"
    elif target_user_type is not None:
        tokens = repo.tokens_for_user_type(target_user_type)
        scope = f"role {target_user_type.value}"
    else:
        tokens = repo.all_active_tokens()
        scope = "broadcast"

    logger.debug(f"[FCM Send] Resolved {len(tokens)} token(s) for {scope}")
    return tokens
