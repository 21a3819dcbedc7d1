# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Failure message normalization and signature hashing.

Two failures that differ only in numbers, file paths or line/column positions
share a signature, which lets unrelated tests failing for the same underlying
cause be clustered.

Example:
    >>> failure_signature("Timeout after 3000ms in /tmp/run-17/app.py at 12:4") == (
    ...     failure_signature("Timeout after 5000ms in /tmp/run-92/app.py at 88:1")
    ... )
    True
"""

from __future__ import annotations

import hashlib
import re

_LINE_COL_PATTERN = re.compile(r"at \d+:\d+")
_NUMBER_PATTERN = re.compile(r"\d+")
_PATH_SEGMENT_PATTERN = re.compile(r"/[^/\s]+/")


def normalize_failure_message(message: str) -> str:
    """Strip dynamic content from a failure message.

    Line/column positions become ``at LINE:COL``, remaining digit runs
    become ``NUM`` and path segments become ``/PATH/``; the result is
    lowercased and trimmed.
    """
    normalized = _LINE_COL_PATTERN.sub("at LINE:COL", message)
    normalized = _NUMBER_PATTERN.sub("NUM", normalized)
    normalized = _PATH_SEGMENT_PATTERN.sub("/PATH/", normalized)
    return normalized.lower().strip()


def failure_signature(message: str | None) -> str | None:
    """Return the hex digest of the normalized message, None for no message."""
    if not message or not message.strip():
        return None
    normalized = normalize_failure_message(message)
    return hashlib.md5(normalized.encode("utf-8"), usedforsecurity=False).hexdigest()


__all__ = ["failure_signature", "normalize_failure_message"]
