# sniket/schemas/fcm/send_schema.py

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from sniket.models.fcm_user_subscription import UserType
from sniket.schemas.base_schema import CamelModel


class SendRequest(CamelModel):
    """No target at all means broadcast."""
    target_user_id: Optional[str] = None
    target_user_type: Optional[UserType] = None
    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., max_length=1000)
    data: Dict[str, Any] = Field(default_factory=dict)
    click_action: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("target_user_id", "target_user_type", mode="before")
    @classmethod
    def blank_target_is_none(cls, value):
        # clients send "" for "no target"
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SendResults(CamelModel):
    success_count: int = 0
    failure_count: int = 0
    invalid_tokens: List[str] = Field(default_factory=list)


class SendResponse(CamelModel):
    success: bool
    results: SendResults
    message: str
    error: Optional[str] = None
