# intake/core/exceptions.py
from __future__ import annotations

from typing import Any, Dict, Optional


GENERIC_ERROR_MESSAGE = "An error occurred while processing your request. Please try again."


class BaseAPIException(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        """Message safe to return to an anonymous caller."""
        if self.status_code >= 500:
            return GENERIC_ERROR_MESSAGE
        return self.message


class BusinessRuleError(BaseAPIException):
    """Business rule violation."""
    def __init__(self, message: str = "Business rule violation", **kwargs):
        super().__init__(message, status_code=400, **kwargs)


class InvalidDomainError(BusinessRuleError):
    """No active brand serves the inbound host."""
    def __init__(self, message: str = "Invalid domain", **kwargs):
        super().__init__(message, **kwargs)


class RateLimitError(BaseAPIException):
    """Rate limit exceeded."""
    def __init__(self, message: str = "Too many requests", retry_after: Optional[int] = None, **kwargs):
        super().__init__(message, status_code=429, **kwargs)
        self.retry_after = retry_after


class DatabaseError(BaseAPIException):
    """Database error."""
    def __init__(self, message: str = "Database error", **kwargs):
        super().__init__(message, status_code=500, **kwargs)


class LeadPersistenceError(DatabaseError):
    """A lead or audit row could not be written."""
    def __init__(self, message: str = "Failed to persist lead record", **kwargs):
        super().__init__(message, **kwargs)


class IntakeProcessingError(BaseAPIException):
    """Generic failure while processing a lead submission."""
    def __init__(self, message: str = GENERIC_ERROR_MESSAGE, **kwargs):
        super().__init__(message, status_code=500, **kwargs)


class ServiceUnavailableError(BaseAPIException):
    """Service unavailable."""
    def __init__(self, message: str = "Service unavailable", **kwargs):
        super().__init__(message, status_code=503, **kwargs)
