import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


class PermissionState(str, enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"  # not asked yet / prompt dismissed
    UNSUPPORTED = "unsupported"


class RegistrationState(str, enum.Enum):
    UNREGISTERED = "unregistered"
    PERMISSION_PENDING = "permission_pending"
    PERMISSION_DENIED = "permission_denied"
    TOKEN_PENDING = "token_pending"
    REGISTERED = "registered"


class RegistrationErrorCode(str, enum.Enum):
    PERMISSION_DENIED = "permission_denied"
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    TOKEN_UNAVAILABLE = "token_unavailable"
    REGISTRY_WRITE_FAILED = "registry_write_failed"
    NETWORK_ERROR = "network_error"
    INVALID_TOKEN = "invalid_token"


@dataclass
class RegistrationResult:
    success: bool
    error: Optional[RegistrationErrorCode] = None
    message: Optional[str] = None
    token: Optional[str] = None

    @classmethod
    def ok(cls, token: Optional[str] = None, message: Optional[str] = None) -> "RegistrationResult":
        return cls(success=True, token=token, message=message)

    @classmethod
    def fail(cls, error: RegistrationErrorCode, message: Optional[str] = None) -> "RegistrationResult":
        return cls(success=False, error=error, message=message)


@dataclass
class PushPayload:
    """A received FCM message, as handed over by the push SDK."""

    notification: Dict[str, Any] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)
    fcm_options: Dict[str, Any] = field(default_factory=dict)
    message_id: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "PushPayload":
        raw = raw or {}
        return cls(
            notification=dict(raw.get("notification") or {}),
            data=dict(raw.get("data") or {}),
            fcm_options=dict(raw.get("fcmOptions") or raw.get("fcm_options") or {}),
            message_id=raw.get("messageId") or raw.get("message_id"),
        )

    @property
    def title(self) -> Optional[str]:
        return self.notification.get("title") or self.data.get("title")

    @property
    def body(self) -> Optional[str]:
        return self.notification.get("body") or self.data.get("body")

    @property
    def click_action(self) -> str:
        return (
            self.data.get("clickAction")
            or self.fcm_options.get("link")
            or "/"
        )
