# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Flake Score Model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import (
    EnumFlakePattern,
    EnumFlakeRecommendation,
    EnumSeverity,
)
from flakeguard.models.model_flake_features import ModelFlakeFeatures


class ModelFlakeScore(BaseModel):
    """Latest computed flakiness result for one test case.

    ``score`` is None when the history is below the minimum occurrence
    count; ``insufficient_data`` is then True and the recommendation is
    STABLE with an explanatory ``reason``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    test_id: UUID
    score: float | None = Field(default=None, ge=0.0, le=1.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    features: ModelFlakeFeatures = Field(default_factory=ModelFlakeFeatures)
    pattern: EnumFlakePattern = Field(default=EnumFlakePattern.UNKNOWN)
    severity: EnumSeverity = Field(default=EnumSeverity.LOW)
    recommendation: EnumFlakeRecommendation = Field(
        default=EnumFlakeRecommendation.STABLE
    )
    recommendation_text: str = Field(default="")
    insufficient_data: bool = Field(default=False)
    reason: str = Field(default="")
    last_updated: datetime

    @property
    def is_flaky(self) -> bool:
        return self.recommendation is not EnumFlakeRecommendation.STABLE


__all__ = ["ModelFlakeScore"]
