# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Status Response Model."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumJobKind, EnumJobPhase, EnumJobStatus
from flakeguard.models.model_job_error import ModelJobError


class ModelJobStatusResponse(BaseModel):
    """Status polling view of a job."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    job_id: UUID
    kind: EnumJobKind
    status: EnumJobStatus
    phase: EnumJobPhase
    percentage: float = Field(..., ge=0.0, le=100.0)
    attempts: int = Field(..., ge=0)
    correlation_id: UUID
    result_summary: dict[str, object] | None = Field(default=None)
    errors: tuple[ModelJobError, ...] = Field(default=())


__all__ = ["ModelJobStatusResponse"]
