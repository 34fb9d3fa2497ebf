"""
Shared error handling for TripBuddy.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class TripBuddyException(Exception):
    """Base exception for TripBuddy services and client."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(TripBuddyException):
    """Validation-related errors. Never retried."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundOrUnauthorizedError(TripBuddyException):
    """Missing record or record owned by someone else.

    The two cases share one error so callers cannot tell whether another user's trip exists.
    """

    status_code = 404

    def __init__(self, message: str = "Not found or unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND_OR_UNAUTHORIZED", message, details)


class RateLimitError(TripBuddyException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None):
        super().__init__("RATE_LIMIT_ERROR", message, details)


class ExternalServiceError(TripBuddyException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)


class StorageError(TripBuddyException):
    """Durable storage could not be read or written."""

    status_code = 500

    def __init__(self, message: str = "Storage error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORAGE_ERROR", message, details)
