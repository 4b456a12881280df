"""
Common data structures shared by routes.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field

from chat_service.errors import ChatServiceError


class ErrorResponse(BaseModel):
    """
    Standard error response format for API errors and stream error frames.
    """
    error: str = Field(..., description="Human-readable error message")
    error_code: str = Field(..., description="Machine-readable error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(..., description="When the error occurred (ISO 8601)")

    @classmethod
    def from_error(cls, exc: ChatServiceError) -> "ErrorResponse":
        cause = exc.__cause__
        details = {"cause": cause.message if isinstance(cause, ChatServiceError) else str(cause)} if cause else None
        return cls(
            error=exc.message or exc.code,
            error_code=exc.code,
            details=details,
            timestamp=datetime.now(timezone.utc),
        )
