from dataclasses import dataclass
from typing import Dict

from sniket.core.error_handler import error_response
from sniket.schemas.error_schema import ErrorResponse


@dataclass(frozen=True)
class FcmError:
    status: int
    code: str
    reason: str
    error: str

    def to_dict(self, path: str) -> Dict:
        """Swagger example payload."""
        return {
            "success": False,
            "status": self.status,
            "code": self.code,
            "reason": self.reason,
            "error": self.error,
            "timeStamp": "...",
            "path": path,
        }


FCM_ERRORS: Dict[str, FcmError] = {
    # POST /register
    "FCM_REGISTER_500_1": FcmError(500, "FCM_REGISTER_500_1", "Could not store the device registration.", "registry_write_failed"),
    "FCM_REGISTER_503_1": FcmError(503, "FCM_REGISTER_503_1", "Registration storage is unavailable.", "registry_write_failed"),

    # POST /unregister
    "FCM_UNREGISTER_500_1": FcmError(500, "FCM_UNREGISTER_500_1", "Could not remove the subscription.", "registry_write_failed"),

    # POST /send
    "FCM_SEND_401_1": FcmError(401, "FCM_SEND_401_1", "Authorization header is required.", "unauthorized"),
    "FCM_SEND_401_2": FcmError(401, "FCM_SEND_401_2", "Authorization header must be 'Bearer <key>'.", "unauthorized"),
    "FCM_SEND_401_3": FcmError(401, "FCM_SEND_401_3", "Invalid API key.", "unauthorized"),
    "FCM_SEND_500_1": FcmError(500, "FCM_SEND_500_1", "Could not resolve notification targets.", "network_error"),

    # POST /verify-registration
    "FCM_VERIFY_500_1": FcmError(500, "FCM_VERIFY_500_1", "Registration lookup failed.", "database_error"),

    # POST /cleanup-token
    "FCM_CLEANUP_500_1": FcmError(500, "FCM_CLEANUP_500_1", "Token cleanup failed.", "registry_write_failed"),
}


def fcm_error(code: str, path: str):
    """Build the standard error response for a known FCM error code."""
    err = FCM_ERRORS.get(code)
    if not err:
        return error_response(500, "FCM_500", "Internal server error.", path)
    return error_response(err.status, err.code, err.reason, path, error=err.error)


def _examples_for_codes(path: str, codes: Dict[str, FcmError]) -> Dict:
    return {
        code: {"value": err.to_dict(path)}
        for code, err in codes.items()
    }


def _responses(path: str, grouped: Dict[int, Dict[str, str]]) -> Dict:
    responses = {}
    for status, spec in grouped.items():
        codes = {code: FCM_ERRORS[code] for code in spec["codes"]}
        responses[status] = {
            "model": ErrorResponse,
            "description": spec["description"],
            "content": {
                "application/json": {
                    "examples": _examples_for_codes(path, codes)
                }
            },
        }
    return responses


FCM_REGISTER_RESPONSES = _responses("/api/v1/fcm/register", {
    500: {"description": "Storage error", "codes": ["FCM_REGISTER_500_1"]},
    503: {"description": "Storage unavailable", "codes": ["FCM_REGISTER_503_1"]},
})

FCM_UNREGISTER_RESPONSES = _responses("/api/v1/fcm/unregister", {
    500: {"description": "Storage error", "codes": ["FCM_UNREGISTER_500_1"]},
})

FCM_SEND_RESPONSES = _responses("/api/v1/fcm/send", {
    401: {"description": "Authentication failed", "codes": ["FCM_SEND_401_1", "FCM_SEND_401_2", "FCM_SEND_401_3"]},
    500: {"description": "Target resolution failed", "codes": ["FCM_SEND_500_1"]},
})

FCM_VERIFY_RESPONSES = _responses("/api/v1/fcm/verify-registration", {
    500: {"description": "Database error", "codes": ["FCM_VERIFY_500_1"]},
})

FCM_CLEANUP_RESPONSES = _responses("/api/v1/fcm/cleanup-token", {
    500: {"description": "Cleanup failed", "codes": ["FCM_CLEANUP_500_1"]},
})
