# sniket/schemas/fcm/register_schema.py

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from sniket.models.fcm_user_subscription import UserType
from sniket.schemas.base_schema import CamelModel


# -------------------------
# Registration payload
# -------------------------
class DeviceTokenSchema(CamelModel):
    token: str = Field(..., min_length=1, description="Push token issued by FCM")
    device_id: Optional[str] = Field(None, description="Stable per-browser id")
    browser: Optional[str] = Field(None, description="Chrome, Firefox, ...")
    platform: Optional[str] = None
    user_agent: Optional[str] = None
    registered_at: Optional[datetime] = None


class UserSubscriptionSchema(CamelModel):
    user_id: str = Field(..., min_length=1, description="Logical account id")
    user_type: UserType = Field(..., description="customer | provider | admin")
    email: Optional[str] = None
    name: Optional[str] = None
    active_session_id: Optional[str] = None
    last_active: Optional[datetime] = None


class RegisterRequest(CamelModel):
    device_token: DeviceTokenSchema
    user_subscription: UserSubscriptionSchema
    topics: List[str] = Field(default_factory=list)


class TopicResult(CamelModel):
    topic: str
    success: bool
    error: Optional[str] = None


class RegisterResponse(CamelModel):
    success: bool
    device_id: Optional[str] = None
    subscriptions: List[TopicResult] = Field(default_factory=list)
    message: str
    time_stamp: str


# -------------------------
# Unregister
# -------------------------
class UnregisterRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    user_type: UserType
    token: Optional[str] = None
    device_id: Optional[str] = None


class UnregisterResponse(CamelModel):
    success: bool
    removed: int
    message: str


# -------------------------
# Verify / cleanup
# -------------------------
class VerifyRegistrationRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    user_type: UserType


class VerifyRegistrationResponse(CamelModel):
    exists: bool
    has_active_subscriptions: bool
    has_valid_devices: bool
    should_re_register: bool
    time_stamp: str


class CleanupTokenRequest(CamelModel):
    old_token: str = Field(..., min_length=1)
    device_id: Optional[str] = None
    user_id: Optional[str] = None


class CleanupTokenResponse(CamelModel):
    success: bool
    deactivated_tokens: int
    message: str
    time_stamp: str


# -------------------------
# Registry listing
# -------------------------
class SubscriptionItem(CamelModel):
    user_id: str
    user_type: UserType
    email: Optional[str] = None
    name: Optional[str] = None
    active_session_id: Optional[str] = None
    last_active: Optional[datetime] = None


class SubscriptionListResponse(CamelModel):
    token: str
    subscriptions: List[SubscriptionItem]
