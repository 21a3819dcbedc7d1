# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Error message sanitization utilities.

Exception text from HTTP clients and database drivers can embed tokens or
connection strings. Job error entries and log records pass messages through
``sanitize_error_string`` before they are stored or emitted.

Example:
    >>> sanitize_error_string("connect failed: postgresql://u:pw@db/x")
    '[REDACTED - potentially sensitive data]'
"""

from __future__ import annotations

SENSITIVE_PATTERNS: tuple[str, ...] = (
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "credential",
    "bearer",
    "authorization",
    "-----begin",
    "postgres://",
    "postgresql://",
)

_REDACTED = "[REDACTED - potentially sensitive data]"


def sanitize_error_string(error_str: str, max_length: int = 500) -> str:
    """Redact messages that look sensitive and truncate long ones.

    Args:
        error_str: Raw error text
        max_length: Maximum length of the returned message

    Returns:
        A message safe to log and to store in job results.
    """
    lowered = error_str.lower()
    if any(pattern in lowered for pattern in SENSITIVE_PATTERNS):
        return _REDACTED
    if len(error_str) > max_length:
        return error_str[: max_length - 3] + "..."
    return error_str


def sanitize_error_message(error: BaseException, max_length: int = 500) -> str:
    """Sanitize an exception as ``TypeName: message``."""
    message = str(error)
    text = f"{type(error).__name__}: {message}" if message else type(error).__name__
    return sanitize_error_string(text, max_length=max_length)


__all__ = ["SENSITIVE_PATTERNS", "sanitize_error_message", "sanitize_error_string"]
