"""
Exception hierarchy for the assistant.

Every error carries an HTTP status and a machine-readable error code:
- the API layer turns them into JSON error bodies
- the chat engine maps them to localized fallback replies
"""
from typing import Optional


class AssistantException(Exception):
    """
    Base exception for all assistant errors.

    Never raised directly; subclasses set status_code and error_code.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        """JSON body for error responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


class RateLimitExceeded(AssistantException):
    """A client spent its token bucket."""
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, retry_after: int = 1):
        super().__init__(
            message=f"Rate limit exceeded. Please slow down and retry in {retry_after} seconds.",
            details=f"retry_after={retry_after}"
        )
        self.retry_after = retry_after


class ValidationError(AssistantException):
    """User input was rejected before reaching the engine."""
    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details=f"field={field}" if field else None)
        self.field = field


class DatabaseError(AssistantException):
    """A storage operation failed; wraps the SQLAlchemy error."""
    status_code = 503
    error_code = "database_error"

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class LLMError(AssistantException):
    """The LLM provider rejected the call or could not be reached."""
    status_code = 503
    error_code = "llm_error"

    def __init__(self, message: str = "LLM service unavailable"):
        super().__init__(message)


class LLMTimeoutError(LLMError):
    """Raised when the LLM does not finish answering before the deadline."""
    status_code = 504
    error_code = "llm_timeout"

    def __init__(self, timeout_seconds: float = 30):
        super().__init__(f"LLM response timed out after {timeout_seconds} seconds")
        self.timeout_seconds = timeout_seconds


class CircuitOpenError(AssistantException):
    """Raised when the circuit breaker rejects a call without trying it."""
    status_code = 503
    error_code = "circuit_open"

    def __init__(self, message: str = "circuit breaker is open"):
        super().__init__(message)


class TooManyRequestsError(AssistantException):
    """Raised when a half-open breaker already has its single trial call in flight."""
    status_code = 503
    error_code = "too_many_requests"

    def __init__(self, message: str = "too many requests"):
        super().__init__(message)


class StreamCancelled(AssistantException):
    """Raised when the caller abandons a streaming answer."""
    status_code = 499
    error_code = "stream_cancelled"

    def __init__(self, message: str = "Stream cancelled by caller"):
        super().__init__(message)


class TransportError(AssistantException):
    """Raised when the responder can no longer deliver events to the client."""
    status_code = 500
    error_code = "transport_error"

    def __init__(self, message: str = "Failed to deliver response"):
        super().__init__(message)
