from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error envelope shared by every domain."""
    success: bool = Field(False, description="Always false")
    status: int = Field(..., description="HTTP status code")
    code: str = Field(..., description="Domain error code")
    reason: str = Field(..., description="Human readable reason")
    error: str = Field(..., description="Short error string for clients")
    timeStamp: str = Field(..., description="Response time (ISO format)")
    path: str = Field(..., description="Request path")
