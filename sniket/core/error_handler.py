from datetime import datetime
from typing import Optional

from fastapi.responses import JSONResponse

from sniket.schemas.error_schema import ErrorResponse


def error_response(
    status: int,
    code: str,
    reason: str,
    path: str,
    error: Optional[str] = None,
) -> JSONResponse:

    body = ErrorResponse(
        success=False,
        status=status,
        code=code,
        reason=reason,
        error=error or reason,
        timeStamp=datetime.utcnow().isoformat(),
        path=path
    )

    return JSONResponse(
        status_code=status,
        content=body.model_dump()
    )
