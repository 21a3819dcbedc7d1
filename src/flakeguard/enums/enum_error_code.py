# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Machine-Readable Error Code Enumeration.

Every user-visible failure carries one of these codes alongside its
human-readable message.
"""

from enum import Enum


class EnumErrorCode(str, Enum):
    """Error codes attached to FlakeGuardError and job error entries."""

    OPERATION_FAILED = "OPERATION_FAILED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    TIMEOUT = "TIMEOUT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    ARTIFACT_LIST_FAILED = "ARTIFACT_LIST_FAILED"
    ARTIFACT_DOWNLOAD_FAILED = "ARTIFACT_DOWNLOAD_FAILED"
    ARCHIVE_INVALID = "ARCHIVE_INVALID"
    ARCHIVE_TOO_LARGE = "ARCHIVE_TOO_LARGE"
    REPORT_MALFORMED = "REPORT_MALFORMED"
    REPORT_TOO_LARGE = "REPORT_TOO_LARGE"
    POLICY_INVALID = "POLICY_INVALID"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    JOB_CANCELLED = "JOB_CANCELLED"
    NO_ARTIFACTS_PROCESSED = "NO_ARTIFACTS_PROCESSED"
    QUARANTINE_CONFLICT = "QUARANTINE_CONFLICT"


__all__ = ["EnumErrorCode"]
