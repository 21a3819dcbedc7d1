# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Quarantine Proposal Model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ModelQuarantineProposal(BaseModel):
    """Suggested quarantine for a test above the quarantine threshold."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    test_id: UUID
    score: float = Field(..., ge=0.0, le=1.0)
    rationale: str
    suggested_until: datetime


__all__ = ["ModelQuarantineProposal"]
