# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Progress Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumJobPhase


class ModelJobProgress(BaseModel):
    """Phase plus processed/total counters for a running job."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    phase: EnumJobPhase = Field(default=EnumJobPhase.DISCOVERING)
    processed: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)

    @property
    def percentage(self) -> float:
        if self.phase is EnumJobPhase.COMPLETE:
            return 100.0
        if self.total == 0:
            return 0.0
        return round(min(self.processed / self.total, 1.0) * 100.0, 1)


__all__ = ["ModelJobProgress"]
