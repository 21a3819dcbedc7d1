# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Analysis Result Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelAnalysisResult(BaseModel):
    """Summary of scoring and policy evaluation for one repository.

    Attributes:
        tests_scored: Test cases with a computed score
        insufficient_data: Test cases below the minimum occurrence count
        flaky_tests: Test cases whose recommendation is not STABLE
        warned: Decisions with action=warn
        quarantine_recommended: Decisions with action=quarantine
        quarantined: Quarantine decisions actually enacted
        failure_clusters: Signature clusters with two or more failures
        overall_score: Mean score of flaky tests (0 when none)
        recommendations: Repository-level recommendations
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tests_scored: int = Field(default=0, ge=0)
    insufficient_data: int = Field(default=0, ge=0)
    flaky_tests: int = Field(default=0, ge=0)
    warned: int = Field(default=0, ge=0)
    quarantine_recommended: int = Field(default=0, ge=0)
    quarantined: int = Field(default=0, ge=0)
    failure_clusters: int = Field(default=0, ge=0)
    overall_score: float = Field(default=0.0, ge=0.0, le=1.0)
    recommendations: tuple[str, ...] = Field(default=())


__all__ = ["ModelAnalysisResult"]
