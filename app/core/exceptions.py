from typing import Optional, Any

class OwlpoleError(Exception):
    """
    Base exception for the Owlpole backend.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(OwlpoleError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class AuthenticationError(OwlpoleError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Not authorized to access this route", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)

class AuthorizationError(OwlpoleError):
    """
    Raised when an authenticated user lacks the required role or ownership.
    """
    def __init__(self, message: str = "Unauthorized access", details: Optional[Any] = None):
        super().__init__(message, code="FORBIDDEN", status_code=403, details=details)

class ValidationError(OwlpoleError):
    """
    Raised when a request is rejected before any order or record is created
    (bad plan type, unknown credit package, malformed answers).
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_FAILURE", status_code=400, details=details)

class AuthenticityError(OwlpoleError):
    """
    Raised when a webhook signature is missing or does not match.
    """
    def __init__(self, message: str = "Invalid signature", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICITY_FAILURE", status_code=400, details=details)

class ProviderUnavailableError(OwlpoleError):
    """
    Raised when the payment provider cannot create an order.
    The caller may retry; nothing retries automatically.
    """
    def __init__(self, message: str = "Payment system unavailable. Please try again.", details: Optional[Any] = None):
        super().__init__(message, code="PROVIDER_UNAVAILABLE", status_code=503, details=details)

class CorrelationMissError(OwlpoleError):
    """
    Raised when no PENDING record matches a provider order id.
    """
    def __init__(self, message: str = "Billing record not found", details: Optional[Any] = None):
        super().__init__(message, code="CORRELATION_MISS", status_code=404, details=details)

class ConflictError(OwlpoleError):
    """
    Raised when a request would repeat a one-time transition.
    """
    def __init__(self, message: str = "Conflict", details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=409, details=details)
