# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Test Occurrence Model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumTestStatus


class ModelOccurrence(BaseModel):
    """One execution of a test case within one CI run. Append-only.

    (test_id, run_id, attempt) is unique; re-inserting the same triple is a
    no-op.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID
    test_id: UUID
    run_id: int = Field(..., description="CI workflow run id")
    attempt: int = Field(default=1, ge=1, description="CI run attempt number")
    status: EnumTestStatus
    duration_ms: int = Field(default=0, ge=0)
    created_at: datetime
    branch: str | None = Field(default=None)
    commit_sha: str | None = Field(default=None)
    failure_message: str | None = Field(default=None)
    failure_signature: str | None = Field(default=None)
    stack_trace: str | None = Field(default=None)


__all__ = ["ModelOccurrence"]
