"""Shared utilities: logging, secret sanitization and the HTTP client."""

from inbox_targeting.utils.http_client import AIOHTTPClient, CircuitOpenError, HTTPStatusError
from inbox_targeting.utils.logging import (
    configure_logging,
    get_correlation_id,
    get_logger,
    log_with_context,
)
from inbox_targeting.utils.sanitization import (
    REDACTED,
    sanitize_exception,
    sanitize_mapping,
    sanitize_value,
)

__all__ = [
    "AIOHTTPClient",
    "CircuitOpenError",
    "HTTPStatusError",
    "REDACTED",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "sanitize_exception",
    "sanitize_mapping",
    "sanitize_value",
]
