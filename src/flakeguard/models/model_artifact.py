# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""CI Artifact Descriptor Model."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ModelArtifact(BaseModel):
    """Artifact listed by the CI provider for a workflow run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int = Field(..., description="Provider artifact id")
    name: str = Field(..., description="Artifact name")
    size_bytes: int = Field(default=0, ge=0)
    expired: bool = Field(default=False)
    created_at: datetime | None = Field(default=None)


__all__ = ["ModelArtifact"]
