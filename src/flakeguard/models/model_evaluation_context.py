# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy Evaluation Context Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelEvaluationContext(BaseModel):
    """Per-test input to policy evaluation alongside its flake score.

    Attributes:
        test_name: Full test name, matched against exempted_tests
        test_path: Test source file path, matched against exclude_paths
        team: Owning team, selects a team override when one exists
        labels: Labels on the triggering context (e.g. pull request)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    test_name: str = Field(..., min_length=1)
    test_path: str | None = Field(default=None)
    team: str | None = Field(default=None)
    labels: tuple[str, ...] = Field(default=())


__all__ = ["ModelEvaluationContext"]
