from typing import Any, Dict, Iterable, List, Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging
from loguru import logger

from sniket.core.config import settings

# FCM rejects multicast batches above this size
MULTICAST_LIMIT = 500

_INVALID_TOKEN_CODES = (
    "registration-token-not-registered",
    "invalid-registration-token",
)


def get_firebase_app():
    """
    Return the default Firebase app, initialising it on first use.
    Credentials come from FIREBASE_CREDENTIALS, else Application Default Credentials.
    """
    if firebase_admin._apps:
        return firebase_admin.get_app()

    if settings.FIREBASE_CREDENTIALS:
        logger.info(f"[FCM] Loading Firebase credentials from: {settings.FIREBASE_CREDENTIALS}")
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS)
    else:
        logger.info("[FCM] FIREBASE_CREDENTIALS not set, using application default credentials")
        cred = credentials.ApplicationDefault()

    app = firebase_admin.initialize_app(cred)
    logger.info("[FCM] Firebase Admin SDK initialized")
    return app


def short_token(token: Optional[str]) -> str:
    if not token:
        return "<none>"
    return f"{token[:20]}..."


def is_invalid_token_error(error: Optional[BaseException]) -> bool:
    """True when FCM says the token itself is dead, not when the send merely failed."""
    if error is None:
        return False
    if isinstance(error, (messaging.UnregisteredError, messaging.SenderIdMismatchError)):
        return True
    if getattr(error, "code", None) in _INVALID_TOKEN_CODES:
        return True
    if isinstance(error, exceptions.InvalidArgumentError):
        return "registration token" in str(error).lower()
    return False


def _build_multicast(
    tokens: List[str],
    title: str,
    body: str,
    data: Dict[str, str],
    click_action: str,
    image_url: Optional[str],
    tag: Optional[str],
) -> messaging.MulticastMessage:
    # WebpushFCMOptions only accepts absolute https links
    fcm_options = None
    if click_action.startswith("https://"):
        fcm_options = messaging.WebpushFCMOptions(link=click_action)

    return messaging.MulticastMessage(
        notification=messaging.Notification(
            title=title,
            body=body,
            image=image_url,
        ),
        data=data,
        tokens=tokens,
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                click_action=click_action,
                channel_id="default",
            ),
        ),
        webpush=messaging.WebpushConfig(
            notification=messaging.WebpushNotification(
                icon=settings.FCM_NOTIFICATION_ICON,
                badge=settings.FCM_NOTIFICATION_BADGE,
                tag=tag,
                require_interaction=False,
            ),
            fcm_options=fcm_options,
        ),
    )


def send_push_notification_to_multiple(
    fcm_tokens: Iterable[str],
    title: str,
    body: str,
    data: Optional[Dict[str, Any]] = None,
    click_action: Optional[str] = None,
    image_url: Optional[str] = None,
    tag: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Send one notification to many device tokens.

    Returns:
        Dict: success_count, failure_count, failed_tokens, invalid_tokens, failure_details
    """
    valid_tokens = [t for t in fcm_tokens if t]
    if not valid_tokens:
        return {
            "success_count": 0,
            "failure_count": 0,
            "failed_tokens": [],
            "invalid_tokens": [],
            "failure_details": [],
        }

    payload_data = {k: str(v) for k, v in (data or {}).items() if v is not None}  # FCM data is strings only
    if "type" not in payload_data:
        payload_data["type"] = "GENERIC"
    click_action = click_action or settings.FCM_DEFAULT_CLICK_ACTION

    success_count = 0
    failure_count = 0
    failed_tokens: List[str] = []
    invalid_tokens: List[str] = []
    failure_details: List[Dict[str, Any]] = []

    for start in range(0, len(valid_tokens), MULTICAST_LIMIT):
        batch = valid_tokens[start:start + MULTICAST_LIMIT]
        try:
            get_firebase_app()
            message = _build_multicast(batch, title, body, payload_data, click_action, image_url, tag)
            response = messaging.send_each_for_multicast(message)
        except Exception as e:
            logger.error(f"[FCM] Error sending multicast batch of {len(batch)}: {e}")
            # a transport error says nothing about the tokens; keep them
            failure_count += len(batch)
            failed_tokens.extend(batch)
            failure_details.extend(
                {"token": t, "code": "exception", "exception": type(e).__name__} for t in batch
            )
            continue

        success_count += response.success_count
        failure_count += response.failure_count

        for idx, send_response in enumerate(response.responses):
            if send_response.success:
                continue
            token = batch[idx]
            error_obj = getattr(send_response, "exception", None)
            failed_tokens.append(token)
            failure_details.append({
                "token": token,
                "code": getattr(error_obj, "code", None),
                "exception": type(error_obj).__name__ if error_obj else "UnknownError",
            })
            if is_invalid_token_error(error_obj):
                invalid_tokens.append(token)

    logger.info(f"[FCM] Multicast result: {success_count} success, {failure_count} failures")

    return {
        "success_count": success_count,
        "failure_count": failure_count,
        "failed_tokens": failed_tokens,
        "invalid_tokens": invalid_tokens,
        "failure_details": failure_details,
    }


def subscribe_to_topics(token: str, topics: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Subscribe one token to each topic. A failing topic never aborts the rest.
    """
    results: List[Dict[str, Any]] = []
    for topic in topics:
        try:
            get_firebase_app()
            response = messaging.subscribe_to_topic([token], topic)
            if response.failure_count:
                reason = response.errors[0].reason if response.errors else "unknown"
                logger.warning(f"[FCM] Topic subscription failed for {topic}: {reason}")
                results.append({"topic": topic, "success": False, "error": reason})
            else:
                results.append({"topic": topic, "success": True})
        except Exception as e:
            logger.warning(f"[FCM] Topic subscription failed for {topic}: {e}")
            results.append({"topic": topic, "success": False, "error": str(e)})
    return results
