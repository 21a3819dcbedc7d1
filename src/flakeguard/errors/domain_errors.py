# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Domain Error Classes.

Errors raised by the ingestion, policy, quarantine and job layers. Each
carries a fixed EnumErrorCode so job results and callers can branch on the
code rather than the message.
"""

from __future__ import annotations

from uuid import UUID

from flakeguard.enums import EnumErrorCode
from flakeguard.errors.infra_errors import FlakeGuardError
from flakeguard.errors.model_infra_error_context import ModelInfraErrorContext


class ArchiveExtractionError(FlakeGuardError):
    """Raised when an archive is unreadable or exceeds its size caps.

    Aborts processing of that single artifact only.
    """

    def __init__(
        self,
        message: str,
        error_code: EnumErrorCode = EnumErrorCode.ARCHIVE_INVALID,
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            context=context,
            **extra_context,
        )


class ReportParseError(FlakeGuardError):
    """Raised when a single report file is malformed.

    Callers record this as a warning and continue with the next file.
    """

    def __init__(
        self,
        message: str,
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.REPORT_MALFORMED,
            context=context,
            **extra_context,
        )


class PolicyValidationError(FlakeGuardError):
    """Raised when a policy document fails schema validation.

    Attributes:
        errors: Per-field messages formatted as ``field.path: message``
    """

    def __init__(
        self,
        message: str,
        errors: list[str],
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.POLICY_INVALID,
            context=context,
            **extra_context,
        )
        self.errors = list(errors)


class InvariantViolationError(FlakeGuardError):
    """Raised on programming errors, such as a missing tenant or repository.

    Never caught by the pipelines; surfaced to the caller immediately.
    """

    def __init__(
        self,
        message: str,
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.INVARIANT_VIOLATION,
            context=context,
            **extra_context,
        )


class JobNotFoundError(FlakeGuardError):
    """Raised when a job id is unknown to the job store."""

    def __init__(self, job_id: UUID, **extra_context: object) -> None:
        super().__init__(
            message=f"Job {job_id} not found",
            error_code=EnumErrorCode.JOB_NOT_FOUND,
            job_id=str(job_id),
            **extra_context,
        )
        self.job_id = job_id


class JobCancelledError(FlakeGuardError):
    """Raised inside a running job once cancellation has been requested."""

    def __init__(self, job_id: UUID, **extra_context: object) -> None:
        super().__init__(
            message=f"Job {job_id} was cancelled",
            error_code=EnumErrorCode.JOB_CANCELLED,
            job_id=str(job_id),
            **extra_context,
        )
        self.job_id = job_id


class QuarantineConflictError(FlakeGuardError):
    """Raised when quarantining a test that already has an ACTIVE decision."""

    def __init__(self, test_id: UUID, **extra_context: object) -> None:
        super().__init__(
            message=f"Test {test_id} already has an active quarantine decision",
            error_code=EnumErrorCode.QUARANTINE_CONFLICT,
            test_id=str(test_id),
            **extra_context,
        )
        self.test_id = test_id


__all__ = [
    "ArchiveExtractionError",
    "InvariantViolationError",
    "JobCancelledError",
    "JobNotFoundError",
    "PolicyValidationError",
    "QuarantineConflictError",
    "ReportParseError",
]
