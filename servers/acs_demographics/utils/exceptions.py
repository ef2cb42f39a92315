#!/usr/bin/env python3
"""Custom exception classes for the ACS demographics server."""

from typing import Any, Dict, Optional


class CensusDataError(Exception):
    """Base exception for all ACS demographics errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(CensusDataError):
    """Raised when a user-supplied identifier or argument is malformed."""

    def __init__(
        self, message: str, field: Optional[str] = None, value: Optional[Any] = None
    ):
        super().__init__(message, "VALIDATION_ERROR", {"field": field, "value": value})
        self.field = field
        self.value = value


class APIError(CensusDataError):
    """Raised when the Census API answers with a non-2xx status or is unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, "API_ERROR", {"status_code": status_code})
        self.status_code = status_code


class FormatError(CensusDataError):
    """Raised when a 2xx response does not have the expected tabular shape."""

    def __init__(self, message: str, payload_type: Optional[str] = None):
        super().__init__(message, "FORMAT_ERROR", {"payload_type": payload_type})
        self.payload_type = payload_type


class TimeoutError(CensusDataError):
    """Raised when a request times out."""

    def __init__(self, message: str, timeout_duration: Optional[float] = None):
        super().__init__(
            message, "TIMEOUT_ERROR", {"timeout_duration": timeout_duration}
        )
        self.timeout_duration = timeout_duration


class NotFoundError(CensusDataError):
    """Raised when a targeted lookup finds no matching geographic unit."""

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message, "NOT_FOUND", {"query": query})
        self.query = query


class RateLimitError(CensusDataError):
    """Raised when the outbound rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, "RATE_LIMIT_ERROR", {"retry_after": retry_after})
        self.retry_after = retry_after


class ConfigurationError(CensusDataError):
    """Raised when there's a configuration error, e.g. no API key."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, "CONFIGURATION_ERROR", {"config_key": config_key})
        self.config_key = config_key


# Failures that move a data load on to its next fallback source.
FETCH_FAILURES = (
    APIError,
    FormatError,
    TimeoutError,
    RateLimitError,
    ConfigurationError,
)
