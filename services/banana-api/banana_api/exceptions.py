"""
Custom exception classes for the banana API service.

Provides specific exceptions for different error scenarios
to improve error handling and debugging.
"""

from typing import Any, Dict, Optional


class BananaApiException(Exception):
    """
    Base exception for all banana API errors.

    All custom exceptions should inherit from this class
    for consistent error handling.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize banana API exception.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(BananaApiException):
    """
    Exception raised when input or entity validation fails.

    Used for out-of-range values such as temperatures below absolute zero.
    """

    def __init__(
        self,
        field_name: str,
        value: Any,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize validation exception.

        Args:
            field_name: Name of the field that failed validation
            value: The invalid value
            reason: Explanation of why validation failed
            details: Additional context about the error
        """
        self.field_name = field_name
        self.value = value
        self.reason = reason
        message = f"Validation failed for '{field_name}': {reason}"
        super().__init__(message, details)


class SecurityRejectionException(BananaApiException):
    """
    Exception raised when a request is refused by the content scan.

    The whole request is refused; nothing is redacted.
    """

    def __init__(
        self,
        source: str,
        pattern: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize security rejection exception.

        Args:
            source: Where the match was found ("body" or "query:<name>")
            pattern: The denylist pattern that matched
            details: Additional context about the error
        """
        self.source = source
        self.pattern = pattern
        super().__init__("The request contains potentially unsafe content", details)


class RateLimitExceededException(BananaApiException):
    """Raised when a rate limit window and its wait queue are both full."""

    def __init__(
        self,
        policy: str,
        limit: int,
        window_seconds: float,
        retry_after: int,
    ) -> None:
        self.policy = policy
        self.limit = limit
        self.window_seconds = window_seconds
        self.retry_after = retry_after
        message = (
            f"Rate limit exceeded for policy '{policy}': {limit} requests per "
            f"{window_seconds:g} seconds. Retry after {retry_after} seconds"
        )
        super().__init__(
            message,
            details={
                "policy": policy,
                "limit": limit,
                "window_seconds": window_seconds,
                "retry_after": retry_after,
            },
        )


class AnalyticsBackendUnavailableException(BananaApiException):
    """Raised when analytics are requested with mock mode disabled."""

    def __init__(self, reason: Optional[str] = None) -> None:
        message = "Analytics backend is unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message, details={"reason": reason})
