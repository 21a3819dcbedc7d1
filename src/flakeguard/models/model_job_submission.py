# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Submission Request Model."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumJobKind, EnumJobPriority
from flakeguard.models.model_artifact_filter import ModelArtifactFilter
from flakeguard.models.model_repository_ref import ModelRepositoryRef


class ModelJobSubmission(BaseModel):
    """Request to ingest (or analyze) one CI run.

    Attributes:
        run_id: CI workflow run id
        repository: Tenant-scoped repository coordinates
        kind: INGEST (default) or ANALYZE
        run_attempt: CI run attempt number recorded on occurrences
        branch: Head branch of the run
        commit_sha: Head commit of the run
        artifact_filter: Overrides the default artifact selection rules
        priority: Queue priority
        labels: Labels of the triggering context, used to gate auto-quarantine
        correlation_id: Caller-supplied trace id; generated when absent
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    run_id: int = Field(..., ge=1)
    repository: ModelRepositoryRef
    kind: EnumJobKind = Field(default=EnumJobKind.INGEST)
    run_attempt: int = Field(default=1, ge=1)
    branch: str | None = Field(default=None)
    commit_sha: str | None = Field(default=None)
    artifact_filter: ModelArtifactFilter | None = Field(default=None)
    priority: EnumJobPriority = Field(default=EnumJobPriority.NORMAL)
    labels: tuple[str, ...] = Field(default=())
    correlation_id: UUID | None = Field(default=None)


__all__ = ["ModelJobSubmission"]
