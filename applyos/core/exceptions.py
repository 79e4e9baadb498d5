"""
Custom Exceptions - Application-specific error classes.

Every error the services raise derives from ApplyOSException:
- status_code maps the error onto an HTTP response
- error_code is the machine-readable "error" field of the JSON body
- to_dict() renders {error, message, details}
"""
from datetime import datetime
from typing import Optional


class ApplyOSException(Exception):
    """
    Base exception for all ApplyOS errors.

    Subclass this for specific error types.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        """Convert to error response dict."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(ApplyOSException):
    """Raised when input validation fails."""
    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details=f"field={field}" if field else None)
        self.field = field


class AuthenticationError(ApplyOSException):
    """Raised when a request carries no valid credentials."""
    status_code = 401
    error_code = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(ApplyOSException):
    """Raised when the caller may not touch a resource."""
    status_code = 403
    error_code = "forbidden"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(ApplyOSException):
    """Raised when a row does not exist or belongs to another user."""
    status_code = 404
    error_code = "not_found"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        super().__init__(
            message=f"{resource} not found",
            details=f"id={resource_id}" if resource_id else None
        )
        self.resource = resource
        self.resource_id = resource_id


class RateLimitExceeded(ApplyOSException):
    """Raised when a client exceeds a rate-limit tier."""
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        message: Optional[str] = None,
        limit: int = 0,
        reset_at: Optional[datetime] = None,
    ):
        super().__init__(
            message=message or f"Rate limit exceeded. Please wait {retry_after} seconds.",
            details=f"retry_after={retry_after}"
        )
        self.retry_after = retry_after
        self.limit = limit
        self.reset_at = reset_at


class AIRateLimitError(ApplyOSException):
    """Raised when every Gemini model of a tier is rate limited."""
    status_code = 429
    error_code = "ai_rate_limited"

    def __init__(self, next_available_time: Optional[datetime] = None):
        when = next_available_time.isoformat() if next_available_time else None
        super().__init__(
            message="AI service is temporarily rate limited. Please try again shortly.",
            details=f"next_available_time={when}" if when else None
        )
        self.next_available_time = next_available_time

    @property
    def retry_after(self) -> int:
        if self.next_available_time is None:
            return 60
        seconds = (self.next_available_time - datetime.utcnow()).total_seconds()
        return max(1, int(seconds))


class DatabaseError(ApplyOSException):
    """Raised when database operations fail."""
    status_code = 503
    error_code = "database_error"

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class LLMError(ApplyOSException):
    """Raised when Gemini calls fail or return unusable output."""
    status_code = 503
    error_code = "llm_error"

    def __init__(self, message: str = "AI service unavailable"):
        super().__init__(message)
