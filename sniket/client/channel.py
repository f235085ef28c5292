import asyncio
import copy
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

GET_ACTIVE_USERS = "GET_ACTIVE_USERS"
UPDATE_ACTIVE_USERS = "UPDATE_ACTIVE_USERS"
PING = "PING"

DEFAULT_TIMEOUT = 1.0

Message = Dict[str, Any]
Handler = Callable[[Message], Awaitable[Optional[Message]]]


class MessageChannel:
    """
    One direction of tab <-> background messaging.

    The receiving side calls listen() with an async handler; the sending side
    uses post() (fire-and-forget) or request() (waits for the handler's reply).
    Messages are deep-copied on the way in, like structured clone.
    """

    def __init__(self, name: str = "sniket-fcm"):
        self.name = name
        self._handler: Optional[Handler] = None

    def listen(self, handler: Handler) -> None:
        self._handler = handler

    def close(self) -> None:
        self._handler = None

    @property
    def connected(self) -> bool:
        return self._handler is not None

    async def post(self, message: Message) -> bool:
        """Deliver without expecting a reply. False when nobody is listening or the handler failed."""
        if self._handler is None:
            return False
        try:
            await self._handler(copy.deepcopy(message))
        except Exception as e:
            logger.warning(f"[FCM Channel] {self.name}: handler failed on {message.get('type')}: {e}")
            return False
        return True

    async def request(self, message: Message, timeout: float = DEFAULT_TIMEOUT) -> Optional[Message]:
        """Reply of the other side, or None when it is absent, fails or is too slow."""
        if self._handler is None:
            return None
        try:
            return await asyncio.wait_for(self._handler(copy.deepcopy(message)), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[FCM Channel] {self.name}: no reply to {message.get('type')} within {timeout}s")
            return None
        except Exception as e:
            logger.warning(f"[FCM Channel] {self.name}: request {message.get('type')} failed: {e}")
            return None


def registry_responder(registry) -> Handler:
    """Tab-side handler answering the background context's registry queries."""

    async def handle(message: Message) -> Optional[Message]:
        kind = message.get("type")
        if kind == GET_ACTIVE_USERS:
            return {"type": GET_ACTIVE_USERS, "activeUsers": registry.snapshot()}
        if kind == PING:
            return {"type": "PONG"}
        return None

    return handle
