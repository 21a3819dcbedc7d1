# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Failure Cluster Model."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ModelFailureCluster(BaseModel):
    """Failures sharing one normalized failure signature."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    signature: str
    sample_message: str
    occurrence_count: int = Field(..., ge=2)
    test_ids: tuple[UUID, ...] = Field(default=())


__all__ = ["ModelFailureCluster"]
