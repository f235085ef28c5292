from dataclasses import dataclass
from typing import Dict

from sniket.core.error_handler import error_response
from sniket.schemas.error_schema import ErrorResponse


@dataclass(frozen=True)
class NotificationError:
    status: int
    code: str
    reason: str

    def to_dict(self, path: str) -> Dict:
        return {
            "success": False,
            "status": self.status,
            "code": self.code,
            "reason": self.reason,
            "error": self.reason,
            "timeStamp": "...",
            "path": path,
        }


NOTIFICATION_ERRORS: Dict[str, NotificationError] = {
    # POST /notifications
    "NOTIF_CREATE_401_1": NotificationError(401, "NOTIF_CREATE_401_1", "Authorization header is required."),
    "NOTIF_CREATE_401_2": NotificationError(401, "NOTIF_CREATE_401_2", "Authorization header must be 'Bearer <key>'."),
    "NOTIF_CREATE_401_3": NotificationError(401, "NOTIF_CREATE_401_3", "Invalid API key."),
    "NOTIF_CREATE_500_1": NotificationError(500, "NOTIF_CREATE_500_1", "Could not store the notification."),

    # PATCH /notifications/{id}/read
    "NOTIF_READ_404_1": NotificationError(404, "NOTIF_READ_404_1", "Notification not found."),
    "NOTIF_READ_500_1": NotificationError(500, "NOTIF_READ_500_1", "Could not update the notification."),
}


def notification_error(code: str, path: str):
    err = NOTIFICATION_ERRORS.get(code)
    if not err:
        return error_response(500, "NOTIF_500", "Internal server error.", path)
    return error_response(err.status, err.code, err.reason, path)


NOTIF_CREATE_RESPONSES = {
    401: {
        "model": ErrorResponse,
        "description": "Authentication failed",
        "content": {
            "application/json": {
                "examples": {
                    code: {"value": NOTIFICATION_ERRORS[code].to_dict("/api/v1/notifications")}
                    for code in ("NOTIF_CREATE_401_1", "NOTIF_CREATE_401_2", "NOTIF_CREATE_401_3")
                }
            }
        },
    },
    500: {"model": ErrorResponse, "description": "Storage error"},
}

NOTIF_READ_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Notification not found"},
    500: {"model": ErrorResponse, "description": "Storage error"},
}
