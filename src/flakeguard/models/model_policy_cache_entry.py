# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy Cache Entry Model."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumPolicySource
from flakeguard.models.model_policy_config import ModelPolicyConfig


class ModelPolicyCacheEntry(BaseModel):
    """Immutable cached policy. Refreshing replaces the entry wholesale."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    config: ModelPolicyConfig
    source: EnumPolicySource
    loaded_at: datetime
    expires_at: datetime
    validation_errors: tuple[str, ...] = Field(default=())

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at


__all__ = ["ModelPolicyCacheEntry"]
