"""
Custom exceptions for the forwarder service.

Provides structured error handling with HTTP status codes and error
details for API responses.
"""

from typing import Any, Dict, Optional


class ForwarderException(Exception):
    """Base exception for the forwarder service."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(ForwarderException):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=503,
            error_code="configuration_error",
            details=details,
        )


class TimestampParseError(ForwarderException, ValueError):
    """Raised when a value is not a valid ISO-8601 instant."""

    def __init__(self, value: Any) -> None:
        super().__init__(
            message=f"Invalid ISO-8601 instant: {value!r}",
            status_code=400,
            error_code="timestamp_parse_error",
            details={"value": value},
        )


class NormalizationError(ForwarderException):
    """Raised when a capture event cannot be turned into a payload."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=422,
            error_code="normalization_error",
            details=details,
        )


class PublisherError(ForwarderException):
    """Raised when the publisher cannot attempt a delivery at all."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="publisher_error",
            details=details,
        )
