#!/usr/bin/env python3
"""Logging for the ACS demographics server.

Records go to stderr because stdout carries the MCP protocol. Each record is
tagged with the id of the tool call that produced it, so the Census requests
and fallbacks behind one dataset load can be read back together.
"""

import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "acs_demographics"

NO_CALL_ID = "-"

_call_id: ContextVar[str] = ContextVar("call_id", default=NO_CALL_ID)


@contextmanager
def tool_call_context(call_id: Optional[str] = None) -> Iterator[str]:
    """Tag every record logged inside the block, tasks included, with one id."""
    token = _call_id.set(call_id or uuid.uuid4().hex[:8])
    try:
        yield _call_id.get()
    finally:
        _call_id.reset(token)


class CallContextFilter(logging.Filter):
    """Stamp records with the current tool call id and a UTC timestamp."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "call_id"):
            record.call_id = _call_id.get()
        record.timestamp = time.strftime(
            "%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)
        )
        return True


def setup_logging(
    level: str = "INFO", format_type: str = "json", include_extra: bool = True
) -> logging.Logger:
    """Install a single stderr handler on the package logger.

    ``format_type`` is "json" or "text". With ``include_extra`` the JSON
    output carries the tool call id.
    """
    numeric_level = getattr(logging, level.upper())
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(numeric_level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    if format_type == "json":
        fmt = "%(timestamp)s %(levelname)s %(name)s %(message)s"
        if include_extra:
            fmt += " %(call_id)s"
        handler.setFormatter(jsonlogger.JsonFormatter(fmt=fmt))
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s [%(call_id)s] %(message)s"
            )
        )
    handler.addFilter(CallContextFilter())

    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)


def log_census_request(
    logger: logging.Logger,
    operation: str,
    endpoint: str,
    duration_ms: float,
    status_code: Optional[int] = None,
    error_code: Optional[str] = None,
    **fields,
) -> None:
    """Record one Census API request.

    ``endpoint`` must already have the API key removed. A failed request is a
    warning, since every caller has a fallback for it.
    """
    extra = {
        "component": "census_api",
        "operation": operation,
        "api_endpoint": endpoint,
        "duration_ms": round(duration_ms, 2),
        "status_code": status_code,
        "error_code": error_code,
        **fields,
    }
    if error_code:
        logger.warning(f"Census {operation} request failed: {error_code}", extra=extra)
    else:
        logger.info(f"Census {operation} request completed", extra=extra)


def log_fallback(
    logger: logging.Logger,
    metric: str,
    source: str,
    *,
    unit: Optional[str] = None,
    failed_source: Optional[str] = None,
    error_code: Optional[str] = None,
    reason: Optional[str] = None,
    **fields,
) -> None:
    """Record that ``metric`` for ``unit`` is served from a substitute source.

    Args:
        logger: Logger instance
        metric: What was substituted ("age", "basic_list", "all", ...)
        source: The source now serving it ("synthetic", "backup", ...)
        unit: Label of the place or area concerned
        failed_source: The source that could not deliver
        error_code: Error code of the failure that caused the switch
        reason: Human-readable cause
        **fields: Additional fields to include in the record
    """
    message = f"{metric} for {unit or 'all places'} served from {source}"
    if reason:
        message += f": {reason}"
    logger.warning(
        message,
        extra={
            "component": "fallback",
            "metric": metric,
            "fallback_source": source,
            "unit": unit,
            "failed_source": failed_source,
            "error_code": error_code,
            **fields,
        },
    )


def log_tool_execution(
    logger: logging.Logger,
    tool_name: str,
    duration_ms: float,
    success: bool,
    error_code: Optional[str] = None,
) -> None:
    extra = {
        "component": "mcp_tool",
        "tool": tool_name,
        "duration_ms": round(duration_ms, 2),
        "success": success,
        "error_code": error_code,
    }
    if success:
        logger.info(f"Tool {tool_name} completed", extra=extra)
    else:
        logger.error(f"Tool {tool_name} failed: {error_code}", extra=extra)
