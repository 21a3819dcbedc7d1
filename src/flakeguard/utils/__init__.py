# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""FlakeGuard utility functions."""

from flakeguard.utils.util_db_error_context import db_operation_error_context
from flakeguard.utils.util_error_sanitization import (
    sanitize_error_message,
    sanitize_error_string,
)
from flakeguard.utils.util_failure_signature import (
    failure_signature,
    normalize_failure_message,
)
from flakeguard.utils.util_tenant_guard import require_tenant

__all__: list[str] = [
    "db_operation_error_context",
    "failure_signature",
    "normalize_failure_message",
    "require_tenant",
    "sanitize_error_message",
    "sanitize_error_string",
]
