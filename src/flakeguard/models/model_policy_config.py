# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Repository Policy Configuration Model.

Schema of the repository-hosted policy document. Unknown fields and
out-of-range values fail validation; a valid document fully replaces the
defaults.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from flakeguard.models.model_scoring_weights import ModelScoringWeights
from flakeguard.models.model_team_override import ModelTeamOverride

DEFAULT_EXCLUDE_PATHS: tuple[str, ...] = (
    "node_modules/**",
    "vendor/**",
    "examples/**",
    "docs/**",
)


class ModelPolicyConfig(BaseModel):
    """Thresholds, gates and exemptions for one repository.

    Attributes:
        flaky_threshold: Score at or above which a test is quarantined
        warn_threshold: Score at or above which a test is warned about
        min_occurrences: Minimum runs before a score is computed
        min_recent_failures: Minimum recent failures before acting
        lookback_days: History older than this is ignored
        rolling_window_size: Maximum number of most recent runs scored
        exclude_paths: Globs over the test file path that disable evaluation
        labels_required: Labels the triggering context must carry for auto-quarantine
        auto_quarantine_enabled: Whether quarantine decisions may be enacted
        quarantine_duration_days: Default quarantine length
        confidence_threshold: Minimum analysis confidence before acting
        exempted_tests: Globs over the test name that are never acted on
        team_overrides: Team name to threshold overrides
        scoring_weights: Weights of the four scoring factors
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    flaky_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    warn_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    min_occurrences: int = Field(default=5, ge=1)
    min_recent_failures: int = Field(default=2, ge=1)
    lookback_days: int = Field(default=7, ge=1, le=365)
    rolling_window_size: int = Field(default=50, ge=5, le=500)
    exclude_paths: tuple[str, ...] = Field(default=DEFAULT_EXCLUDE_PATHS)
    labels_required: tuple[str, ...] = Field(default=())
    auto_quarantine_enabled: bool = Field(default=False)
    quarantine_duration_days: int = Field(default=30, ge=1, le=365)
    confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    exempted_tests: tuple[str, ...] = Field(default=())
    team_overrides: dict[str, ModelTeamOverride] = Field(default_factory=dict)
    scoring_weights: ModelScoringWeights = Field(default_factory=ModelScoringWeights)

    @model_validator(mode="after")
    def _check_threshold_order(self) -> ModelPolicyConfig:
        if self.warn_threshold > self.flaky_threshold:
            raise ValueError(
                f"warn_threshold ({self.warn_threshold}) must not exceed "
                f"flaky_threshold ({self.flaky_threshold})"
            )
        return self


__all__ = ["DEFAULT_EXCLUDE_PATHS", "ModelPolicyConfig"]
