from pydantic import BaseModel
from typing import Optional, Any


class ErrorResponse(BaseModel):
    """
    Error body returned by every failing endpoint.

    `code` is machine-readable: VALIDATION_FAILURE, AUTHENTICITY_FAILURE,
    PROVIDER_UNAVAILABLE, CORRELATION_MISS, NOT_FOUND, FORBIDDEN, ...
    """
    error: str
    code: str
    details: Optional[Any] = None

    @classmethod
    def from_error(cls, exc) -> "ErrorResponse":
        """Builds the body for an OwlpoleError."""
        return cls(error=exc.message, code=exc.code, details=exc.details)
