"""
Browser-side half of the push notification router.

The open tab owns the TokenRegistry and the RegistrationCoordinator; the
background (service worker) context runs the BackgroundDeliveryHandler and
talks to the tab through a MessageChannel. The ForegroundListener handles
pushes that arrive while a tab has focus.
"""
from sniket.client.channel import MessageChannel, registry_responder
from sniket.client.coordinator import RegistrationCoordinator
from sniket.client.delivery_filter import BackgroundDeliveryHandler, should_show
from sniket.client.foreground import ForegroundListener, ForegroundToast
from sniket.client.push_provider import PushProvider, TokenUnavailableError
from sniket.client.registry import RegistryWriteError, TokenRegistry
from sniket.client.storage import JsonFileStore, KeyValueStore, MemoryStore, StorageError
from sniket.client.types import (
    PermissionState,
    PushPayload,
    RegistrationErrorCode,
    RegistrationResult,
    RegistrationState,
)

__all__ = [
    "BackgroundDeliveryHandler",
    "ForegroundListener",
    "ForegroundToast",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "MessageChannel",
    "PermissionState",
    "PushPayload",
    "PushProvider",
    "RegistrationCoordinator",
    "RegistrationErrorCode",
    "RegistrationResult",
    "RegistrationState",
    "RegistryWriteError",
    "StorageError",
    "TokenRegistry",
    "TokenUnavailableError",
    "registry_responder",
    "should_show",
]
