# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""FlakeGuard Errors Module.

Exports the error hierarchy and the structured error context model.
"""

from flakeguard.errors.domain_errors import (
    ArchiveExtractionError,
    InvariantViolationError,
    JobCancelledError,
    JobNotFoundError,
    PolicyValidationError,
    QuarantineConflictError,
    ReportParseError,
)
from flakeguard.errors.infra_errors import (
    FlakeGuardError,
    InfraAuthenticationError,
    InfraConnectionError,
    InfraTimeoutError,
    InfraUnavailableError,
    ProtocolConfigurationError,
    RuntimeHostError,
)
from flakeguard.errors.model_infra_error_context import ModelInfraErrorContext

__all__: list[str] = [
    "ArchiveExtractionError",
    "FlakeGuardError",
    "InfraAuthenticationError",
    "InfraConnectionError",
    "InfraTimeoutError",
    "InfraUnavailableError",
    "InvariantViolationError",
    "JobCancelledError",
    "JobNotFoundError",
    "ModelInfraErrorContext",
    "PolicyValidationError",
    "ProtocolConfigurationError",
    "QuarantineConflictError",
    "ReportParseError",
    "RuntimeHostError",
]
