# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy Cache Statistics Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelPolicyCacheStats(BaseModel):
    """Point-in-time policy cache counters for monitoring.

    Attributes:
        size: Entries currently cached, expired or not
        expired: Cached entries past their expiry
        hits: Lookups served from the cache
        misses: Lookups that loaded the policy file
        expired_evictions: Entries removed because they expired
        invalidations: Entries removed by explicit invalidation
        by_source: Cached entry count per policy source
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    size: int = Field(default=0, ge=0)
    expired: int = Field(default=0, ge=0)
    hits: int = Field(default=0, ge=0)
    misses: int = Field(default=0, ge=0)
    expired_evictions: int = Field(default=0, ge=0)
    invalidations: int = Field(default=0, ge=0)
    by_source: dict[str, int] = Field(default_factory=dict)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


__all__ = ["ModelPolicyCacheStats"]
