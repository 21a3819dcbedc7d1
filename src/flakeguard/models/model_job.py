# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumJobKind, EnumJobPriority, EnumJobStatus
from flakeguard.models.model_analysis_result import ModelAnalysisResult
from flakeguard.models.model_artifact_filter import ModelArtifactFilter
from flakeguard.models.model_ingestion_result import ModelIngestionResult
from flakeguard.models.model_job_error import ModelJobError
from flakeguard.models.model_job_progress import ModelJobProgress
from flakeguard.models.model_repository_ref import ModelRepositoryRef


class ModelJob(BaseModel):
    """Queued unit of work binding a CI run to a processing lifecycle.

    Jobs are immutable snapshots; the orchestrator stores a new copy on every
    transition (``model_copy(update=...)``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID = Field(..., description="Deterministic id over (repository, run, kind)")
    kind: EnumJobKind
    repository: ModelRepositoryRef
    run_id: int
    run_attempt: int = Field(default=1, ge=1)
    branch: str | None = Field(default=None)
    commit_sha: str | None = Field(default=None)
    artifact_filter: ModelArtifactFilter | None = Field(default=None)
    priority: EnumJobPriority = Field(default=EnumJobPriority.NORMAL)
    labels: tuple[str, ...] = Field(default=())
    status: EnumJobStatus = Field(default=EnumJobStatus.QUEUED)
    correlation_id: UUID
    attempts: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    progress: ModelJobProgress = Field(default_factory=ModelJobProgress)
    ingestion_result: ModelIngestionResult | None = Field(default=None)
    analysis_result: ModelAnalysisResult | None = Field(default=None)
    errors: tuple[ModelJobError, ...] = Field(default=())
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = Field(default=None)
    finished_at: datetime | None = Field(default=None)

    def result_summary(self) -> dict[str, object] | None:
        """Terminal result as a plain dict, None while active."""
        if self.status.is_active:
            return None
        if self.ingestion_result is not None:
            return self.ingestion_result.model_dump(mode="json")
        if self.analysis_result is not None:
            return self.analysis_result.model_dump(mode="json")
        return {}


__all__ = ["ModelJob"]
