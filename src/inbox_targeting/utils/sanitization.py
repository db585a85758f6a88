"""Secret sanitization utilities for logging and error messages.

Device push tokens are personal data: a raw token lets anyone push to the
device. Every string that reaches a log record or an error message passes
through these helpers, which redact push tokens, bearer credentials and
token-bearing URL parts while keeping enough structure for debugging.

Examples:
    >>> sanitize_text("sent to ExponentPushToken[abcdefghijklmnop]")
    'sent to ExponentPushToken[<REDACTED>]'

    >>> sanitize_text("Authorization: Bearer s3cr3t-value")
    'Authorization: Bearer <REDACTED>'

    >>> sanitize_value({"access_token": "abc", "count": 42})
    {'access_token': '<REDACTED>', 'count': 42}
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Final, TypeIs

REDACTED: Final[str] = "<REDACTED>"

# ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]
_PUSH_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"(ExponentPushToken\[)([^\]]+)(\])")

_BEARER_PATTERN: Final[re.Pattern[str]] = re.compile(r"(\bBearer\s+)([A-Za-z0-9._~+/=-]+)", re.IGNORECASE)

_TOKEN_IN_QUERY: Final[re.Pattern[str]] = re.compile(
    r"([?&](?:token|access[-_]?token|api[-_]?key|auth|secret)=)([^&#\s]+)",
    re.IGNORECASE,
)

_SENSITIVE_FIELD_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r".*token.*",
        r".*secret.*",
        r".*password.*",
        r".*credential.*",
        r".*authorization.*",
        r".*api[-_]?key.*",
    )
)


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Examples:
        >>> is_sensitive_field("push_token")
        True
        >>> is_sensitive_field("device_id")
        False
    """
    return any(pattern.match(field_name) for pattern in _SENSITIVE_FIELD_PATTERNS)


def sanitize_text(text: str) -> str:
    """Redact push tokens, bearer credentials and query-string secrets.

    Args:
        text: Free-form text such as a log message or exception string

    Returns:
        Text with secret values replaced by the REDACTED marker
    """
    if not text:
        return text

    sanitized = _PUSH_TOKEN_PATTERN.sub(rf"\1{REDACTED}\3", text)
    sanitized = _BEARER_PATTERN.sub(rf"\1{REDACTED}", sanitized)
    return _TOKEN_IN_QUERY.sub(rf"\1{REDACTED}", sanitized)


def _is_primitive(value: object) -> TypeIs[str | int | float | bool | None]:
    return isinstance(value, (str, int, float, bool, type(None)))


def _is_mapping(value: object) -> TypeIs[Mapping[str, object]]:
    return isinstance(value, Mapping)


def _is_sequence(value: object) -> TypeIs[Sequence[object]]:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def sanitize_value(
    value: object,
    *,
    field_name: str | None = None,
) -> object:
    """Recursively sanitize sensitive values from structured data.

    Values under a sensitive field name are replaced wholesale; strings are
    scanned for embedded secrets; mappings and sequences are walked.

    Args:
        value: The value to sanitize (can be any type)
        field_name: Optional field name for context-aware sanitization

    Returns:
        Sanitized value with secrets replaced by REDACTED marker
    """
    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if _is_primitive(value):
        if type(value) is str:
            return sanitize_text(value)
        return value

    if _is_mapping(value):
        return {key: sanitize_value(val, field_name=str(key)) for key, val in value.items()}

    if _is_sequence(value):
        sanitized_items = [sanitize_value(item) for item in value]
        if isinstance(value, tuple):
            return tuple(sanitized_items)
        return sanitized_items

    return sanitize_text(str(value))


def sanitize_exception(exc: BaseException) -> str:
    """Render an exception as ``Type: message`` with secrets removed.

    Examples:
        >>> sanitize_exception(ValueError("bad ExponentPushToken[abc]"))
        'ValueError: bad ExponentPushToken[<REDACTED>]'
    """
    return f"{type(exc).__name__}: {sanitize_text(str(exc))}"


def sanitize_args(args: tuple[object, ...]) -> tuple[object, ...]:
    """Sanitize the args tuple of a LogRecord before formatting."""
    return tuple(sanitize_value(arg) for arg in args)


def sanitize_mapping(data: Mapping[str, object]) -> dict[str, object]:
    """Sanitize a mapping (e.g., a provider response summary) for safe output."""
    return {key: sanitize_value(val, field_name=key) for key, val in data.items()}
