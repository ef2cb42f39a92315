"""Utility modules for the ACS demographics server."""

from .exceptions import (
    APIError,
    CensusDataError,
    ConfigurationError,
    FETCH_FAILURES,
    FormatError,
    NotFoundError,
    RateLimitError,
    TimeoutError,
    ValidationError,
)
from .formatters import (
    format_error_message,
    format_labeled_record,
    format_population_summary,
    format_state_comparison,
    format_state_places,
)
from .logger import (
    get_logger,
    log_census_request,
    log_fallback,
    log_tool_execution,
    setup_logging,
    tool_call_context,
)
from .rate_limiter import RateLimiter, TokenBucket
from .validators import sanitize_string, validate_tool_request

__all__ = [
    "APIError",
    "CensusDataError",
    "ConfigurationError",
    "FETCH_FAILURES",
    "FormatError",
    "NotFoundError",
    "RateLimitError",
    "TimeoutError",
    "ValidationError",
    "format_error_message",
    "format_labeled_record",
    "format_population_summary",
    "format_state_comparison",
    "format_state_places",
    "get_logger",
    "setup_logging",
    "log_census_request",
    "log_fallback",
    "log_tool_execution",
    "tool_call_context",
    "RateLimiter",
    "TokenBucket",
    "sanitize_string",
    "validate_tool_request",
]
