import inspect
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from sniket.client.channel import (
    DEFAULT_TIMEOUT,
    GET_ACTIVE_USERS,
    PING,
    UPDATE_ACTIVE_USERS,
    MessageChannel,
)
from sniket.client.types import PushPayload

TARGET_USER_ID_KEYS = ("userId", "targetUserId")
TARGET_USER_TYPE_KEYS = ("userType", "targetUserType")

DEFAULT_TITLE = "New Notification"
DEFAULT_BODY = "You have a new message"
DEFAULT_ICON = "/assets/logo.png"
DEFAULT_BADGE = "/assets/badge.png"


def _first_present(data: Mapping[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def extract_target(data: Optional[Mapping[str, Any]]) -> Tuple[Optional[str], Optional[str]]:
    """(target user id, target user type) of a push; empty strings count as absent."""
    data = data or {}
    return (
        _first_present(data, TARGET_USER_ID_KEYS),
        _first_present(data, TARGET_USER_TYPE_KEYS),
    )


def _active_pairs(active_users) -> List[Tuple[str, str]]:
    pairs = []
    for user in active_users or []:
        if isinstance(user, Mapping):
            user_id = user.get("userId") or user.get("user_id")
            user_type = user.get("userType") or user.get("user_type")
        else:
            user_id = getattr(user, "user_id", None)
            user_type = getattr(user, "user_type", None)
        if user_id:
            pairs.append((str(user_id), getattr(user_type, "value", user_type) or ""))
    return pairs


def should_show(data: Optional[Mapping[str, Any]], active_users) -> bool:
    """
    Decide whether a push is shown on this device.

    1. no target -> show (broadcast)
    2. nobody known on this device (None or empty) -> show
    3. target user id -> show iff that user is active here, in any role
    4. target role only -> show iff some active user has that role
    """
    target_user_id, target_user_type = extract_target(data)

    if not target_user_id and not target_user_type:
        return True

    pairs = _active_pairs(active_users)
    if not pairs:
        return True

    if target_user_id:
        return any(user_id == target_user_id for user_id, _ in pairs)

    return any(user_type == target_user_type for _, user_type in pairs)


def build_notification_options(
    payload: PushPayload,
    icon: str = DEFAULT_ICON,
    badge: str = DEFAULT_BADGE,
) -> Tuple[str, Dict[str, Any]]:
    """Title and showNotification() options for an OS notification."""
    data = dict(payload.data)
    data.setdefault("clickAction", payload.click_action)

    options = {
        "body": payload.body or DEFAULT_BODY,
        "icon": payload.notification.get("icon") or icon,
        "badge": badge,
        "tag": data.get("type") or "default",
        "data": data,
        "requireInteraction": False,
        "actions": [
            {"action": "view", "title": "View"},
            {"action": "dismiss", "title": "Dismiss"},
        ],
    }
    image = payload.notification.get("image")
    if image:
        options["image"] = image

    return payload.title or DEFAULT_TITLE, options


class BackgroundDeliveryHandler:
    """
    Push handling in the background context, where no tab may be focused.

    Keeps a snapshot of the tab's registry, refreshed by UPDATE_ACTIVE_USERS.
    When the snapshot is cold it asks the tab; no answer means "unknown" and
    the push is shown.
    """

    def __init__(
        self,
        show_notification: Callable[[str, Dict[str, Any]], Any],
        channel_to_tab: Optional[MessageChannel] = None,
        request_timeout: float = DEFAULT_TIMEOUT,
        icon: str = DEFAULT_ICON,
        badge: str = DEFAULT_BADGE,
    ):
        self.show_notification = show_notification
        self.channel_to_tab = channel_to_tab
        self.request_timeout = request_timeout
        self.icon = icon
        self.badge = badge
        self._active_users: Optional[List[Dict[str, Any]]] = None

    @property
    def active_users(self) -> Optional[List[Dict[str, Any]]]:
        return self._active_users

    async def handle_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Listener for messages posted by the tab."""
        kind = message.get("type")
        if kind == UPDATE_ACTIVE_USERS:
            self._active_users = list(message.get("activeUsers") or [])
            logger.debug(f"[FCM SW] Active users updated: {len(self._active_users)}")
            return {"type": "ACK"}
        if kind == PING:
            return {"type": "PONG", "activeUsers": len(self._active_users or [])}
        return None

    async def load_active_users(self) -> Optional[List[Dict[str, Any]]]:
        if self.channel_to_tab is None:
            return None
        reply = await self.channel_to_tab.request({"type": GET_ACTIVE_USERS}, timeout=self.request_timeout)
        if not reply or reply.get("activeUsers") is None:
            return None
        self._active_users = list(reply["activeUsers"])
        return self._active_users

    async def _show(self, title: str, options: Dict[str, Any]) -> None:
        result = self.show_notification(title, options)
        if inspect.isawaitable(result):
            await result

    async def on_background_message(self, raw: Mapping[str, Any]) -> bool:
        """Returns whether a notification was shown."""
        payload = PushPayload.from_dict(raw)

        active_users = self._active_users
        if active_users is None:
            active_users = await self.load_active_users()

        if not should_show(payload.data, active_users):
            target_user_id, target_user_type = extract_target(payload.data)
            logger.info(
                f"[FCM SW] Suppressed push for {target_user_type or '*'}:{target_user_id or '*'}, "
                f"not active on this device"
            )
            return False

        title, options = build_notification_options(payload, icon=self.icon, badge=self.badge)
        try:
            await self._show(title, options)
        except Exception as e:
            logger.error(f"[FCM SW] Failed to show notification, falling back: {e}")
            try:
                await self._show(DEFAULT_TITLE, {
                    "body": DEFAULT_BODY,
                    "icon": self.icon,
                    "tag": "fallback",
                    "data": options["data"],
                })
            except Exception as fallback_error:
                logger.error(f"[FCM SW] Fallback notification failed: {fallback_error}")
                return False
        return True

    @staticmethod
    def on_notification_click(data: Optional[Mapping[str, Any]], action: Optional[str] = None) -> Optional[str]:
        """URL to focus or open for a click, None when the user dismissed."""
        if action == "dismiss":
            return None
        return (data or {}).get("clickAction") or "/"
