# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Submission Response Model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumJobStatus


class ModelJobSubmissionResponse(BaseModel):
    """Returned by submit; ``deduplicated`` is True when an active job was reused."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    job_id: UUID
    status: EnumJobStatus
    estimated_completion: datetime
    deduplicated: bool = Field(default=False)


__all__ = ["ModelJobSubmissionResponse"]
