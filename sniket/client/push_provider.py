from abc import ABC, abstractmethod

from sniket.client.types import PermissionState


class TokenUnavailableError(Exception):
    """The push provider could not issue a token."""


class PushProvider(ABC):
    """
    Browser push SDK: notification permission plus FCM token issuance.
    Implementations wrap whatever runtime hosts the client.
    """

    @abstractmethod
    async def is_supported(self) -> bool:
        ...

    @abstractmethod
    async def permission_state(self) -> PermissionState:
        """Current permission without prompting."""

    @abstractmethod
    async def request_permission(self) -> PermissionState:
        """Prompt the user. DEFAULT means the prompt was dismissed."""

    @abstractmethod
    async def get_token(self) -> str:
        """Current token; may differ from the last one after a rotation. Raises TokenUnavailableError."""

    @abstractmethod
    async def delete_token(self) -> bool:
        ...
