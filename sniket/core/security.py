import hmac
from typing import Optional

from sniket.core.config import settings


def internal_key_error(authorization: Optional[str], prefix: str) -> Optional[str]:
    """
    Check the Bearer key of server-to-server routes.
    Returns the error code to report, or None when the caller may proceed.
    Every caller passes while INTERNAL_API_KEY is unset.
    """
    if not settings.INTERNAL_API_KEY:
        return None

    if authorization is None:
        return f"{prefix}_401_1"

    if not authorization.startswith("Bearer "):
        return f"{prefix}_401_2"

    parts = authorization.split(" ")
    if len(parts) != 2 or not hmac.compare_digest(parts[1], settings.INTERNAL_API_KEY):
        return f"{prefix}_401_3"

    return None
