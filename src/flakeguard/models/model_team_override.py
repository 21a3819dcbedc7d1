# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Team Policy Override Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelTeamOverride(BaseModel):
    """Per-team overrides applied on top of the repository policy."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    flaky_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    warn_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    auto_quarantine_enabled: bool | None = Field(default=None)


__all__ = ["ModelTeamOverride"]
