# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Infrastructure Error Classes.

Error Hierarchy:
    FlakeGuardError (root, carries EnumErrorCode + correlation_id)
    └── RuntimeHostError (base infrastructure error)
        ├── ProtocolConfigurationError
        ├── InfraConnectionError
        ├── InfraTimeoutError
        ├── InfraAuthenticationError
        └── InfraUnavailableError

All errors:
    - Carry a machine-readable EnumErrorCode and a human-readable message
    - Support proper error chaining with `raise ... from e`
    - Accept ModelInfraErrorContext for bundled context parameters
    - Expose a structured `context` dict for logging
"""

from __future__ import annotations

from uuid import UUID

from flakeguard.enums import EnumErrorCode
from flakeguard.errors.model_infra_error_context import ModelInfraErrorContext


class FlakeGuardError(Exception):
    """Root of every error raised by FlakeGuard.

    Attributes:
        message: Human-readable reason
        error_code: Machine-readable code
        correlation_id: Correlation ID of the job or request, when known
        context: Structured fields for logging and job error entries
    """

    def __init__(
        self,
        message: str,
        error_code: EnumErrorCode | None = None,
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or EnumErrorCode.OPERATION_FAILED

        structured_context: dict[str, object] = dict(extra_context)
        self.correlation_id: UUID | None = None
        if context is not None:
            if context.transport_type is not None:
                structured_context["transport_type"] = context.transport_type.value
            if context.operation is not None:
                structured_context["operation"] = context.operation
            if context.target_name is not None:
                structured_context["target_name"] = context.target_name
            self.correlation_id = context.correlation_id
        self.context = structured_context

    @property
    def retryable(self) -> bool:
        """Whether a job failing with this error may be retried."""
        return False

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


class RuntimeHostError(FlakeGuardError):
    """Base error class for infrastructure failures.

    Example:
        >>> context = ModelInfraErrorContext(
        ...     transport_type=EnumInfraTransportType.DATABASE,
        ...     operation="insert_occurrences",
        ... )
        >>> raise RuntimeHostError("Store not initialized", context=context)
    """


class ProtocolConfigurationError(RuntimeHostError):
    """Raised when runtime configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.CONFIGURATION_ERROR,
            context=context,
            **extra_context,
        )


class InfraConnectionError(RuntimeHostError):
    """Raised when a connection to the CI provider or database fails.

    Example:
        >>> raise InfraConnectionError(
        ...     "Failed to connect to PostgreSQL",
        ...     context=context,
        ...     host="db.example.com",
        ... )
    """

    def __init__(
        self,
        message: str,
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.CONNECTION_ERROR,
            context=context,
            **extra_context,
        )

    @property
    def retryable(self) -> bool:
        return True


class InfraTimeoutError(RuntimeHostError):
    """Raised when a remote call, query or job attempt exceeds its timeout.

    Example:
        >>> raise InfraTimeoutError(
        ...     "Artifact download exceeded timeout",
        ...     context=context,
        ...     timeout_seconds=30,
        ... )
    """

    def __init__(
        self,
        message: str,
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.TIMEOUT,
            context=context,
            **extra_context,
        )

    @property
    def retryable(self) -> bool:
        return True


class InfraAuthenticationError(RuntimeHostError):
    """Raised when the CI provider rejects our credentials."""

    def __init__(
        self,
        message: str,
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.AUTHENTICATION_ERROR,
            context=context,
            **extra_context,
        )


class InfraUnavailableError(RuntimeHostError):
    """Raised when a remote service answers with a 5xx or rate limit.

    Example:
        >>> raise InfraUnavailableError(
        ...     "GitHub API unavailable",
        ...     context=context,
        ...     status_code=503,
        ... )
    """

    def __init__(
        self,
        message: str,
        context: ModelInfraErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        super().__init__(
            message=message,
            error_code=EnumErrorCode.SERVICE_UNAVAILABLE,
            context=context,
            **extra_context,
        )

    @property
    def retryable(self) -> bool:
        return True


__all__ = [
    "FlakeGuardError",
    "InfraAuthenticationError",
    "InfraConnectionError",
    "InfraTimeoutError",
    "InfraUnavailableError",
    "ProtocolConfigurationError",
    "RuntimeHostError",
]
