# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy Decision Model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumPolicyAction, EnumSeverity


class ModelPolicyDecision(BaseModel):
    """Decision emitted for one evaluated test."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    test_name: str
    test_id: UUID | None = Field(default=None)
    action: EnumPolicyAction
    reason: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    priority: EnumSeverity
    evaluated_at: datetime
    team_override_applied: bool = Field(default=False)
    exempted: bool = Field(default=False)
    can_auto_quarantine: bool = Field(default=False)
    suggested_quarantine_until: datetime | None = Field(default=None)


__all__ = ["ModelPolicyDecision"]
