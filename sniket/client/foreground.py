from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping

from loguru import logger

from sniket.client.delivery_filter import DEFAULT_BODY, DEFAULT_TITLE, should_show
from sniket.client.registry import TokenRegistry
from sniket.client.types import PushPayload


@dataclass
class ForegroundToast:
    title: str
    body: str
    click_action: str
    data: Dict[str, Any] = field(default_factory=dict)


class ForegroundListener:
    """Pushes that arrive while a tab is focused; rendered in-page instead of by the OS."""

    def __init__(self, registry: TokenRegistry, render_toast: Callable[[ForegroundToast], Any]):
        self.registry = registry
        self.render_toast = render_toast

    def on_message(self, raw: Mapping[str, Any]) -> bool:
        payload = PushPayload.from_dict(raw)

        if not should_show(payload.data, self.registry.list_active_users()):
            logger.info("[FCM Foreground] Push not meant for any user on this device, ignored")
            return False

        self.render_toast(
            ForegroundToast(
                title=payload.title or DEFAULT_TITLE,
                body=payload.body or DEFAULT_BODY,
                click_action=payload.click_action,
                data=payload.data,
            )
        )
        return True
