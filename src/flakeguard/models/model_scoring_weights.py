# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Scoring Weights Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelScoringWeights(BaseModel):
    """Weights of the four flakiness factors, each in [0, 1].

    The weighted sum is clamped to [0, 1], so weights need not sum to one.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    failure_rate: float = Field(default=0.4, ge=0.0, le=1.0)
    inconsistency: float = Field(default=0.3, ge=0.0, le=1.0)
    recency: float = Field(default=0.2, ge=0.0, le=1.0)
    branch_diversity: float = Field(default=0.1, ge=0.0, le=1.0)


__all__ = ["ModelScoringWeights"]
