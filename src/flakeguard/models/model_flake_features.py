# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Flakiness Feature Breakdown Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelFlakeFeatures(BaseModel):
    """Individually inspectable inputs to the flakiness score.

    Attributes:
        failure_rate: failures / (total - skipped) within the window
        inconsistency: adjacent pass<->fail transitions / (n - 1)
        recency: linearly decayed failure rate over the most recent runs
        branch_diversity: failing branches / distinct branches (0 with one branch)
        total_runs: Runs in the window, including skipped
        failures: Failed or errored runs in the window
        skipped: Skipped runs in the window
        recent_failures: Failures among the most recent runs
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    failure_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    inconsistency: float = Field(default=0.0, ge=0.0, le=1.0)
    recency: float = Field(default=0.0, ge=0.0, le=1.0)
    branch_diversity: float = Field(default=0.0, ge=0.0, le=1.0)
    total_runs: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    recent_failures: int = Field(default=0, ge=0)


__all__ = ["ModelFlakeFeatures"]
