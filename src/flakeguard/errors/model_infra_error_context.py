# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Infrastructure Error Context Model.

Bundles the common structured fields attached to FlakeGuard errors so that
error constructors stay small while remaining strongly typed.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumInfraTransportType


class ModelInfraErrorContext(BaseModel):
    """Structured context for FlakeGuard errors.

    Attributes:
        transport_type: Transport the failing operation used (HTTP, DATABASE, ...)
        operation: Operation being performed (list_artifacts, parse_report, ...)
        target_name: Target resource name (repository, artifact, table)
        correlation_id: Job correlation ID for end-to-end tracing

    Example:
        >>> context = ModelInfraErrorContext(
        ...     transport_type=EnumInfraTransportType.HTTP,
        ...     operation="download_artifact",
        ...     target_name="octo/widgets",
        ...     correlation_id=uuid4(),
        ... )
        >>> raise InfraTimeoutError("Download timed out", context=context)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    transport_type: EnumInfraTransportType | None = Field(
        default=None,
        description="Type of infrastructure transport (HTTP, DATABASE, ...)",
    )
    operation: str | None = Field(
        default=None,
        description="Operation being performed",
    )
    target_name: str | None = Field(
        default=None,
        description="Target resource or endpoint name",
    )
    correlation_id: UUID | None = Field(
        default=None,
        description="Correlation ID threaded through a job's stages",
    )


__all__ = ["ModelInfraErrorContext"]
