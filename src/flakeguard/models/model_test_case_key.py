# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Test Case Natural Key Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelTestCaseKey(BaseModel):
    """Natural key identifying a test case across runs."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    org_id: str = Field(..., min_length=1)
    repository: str = Field(..., min_length=1, description="owner/repo")
    suite: str = Field(default="")
    class_name: str = Field(default="")
    name: str = Field(..., min_length=1)

    @property
    def display_name(self) -> str:
        return f"{self.class_name}.{self.name}" if self.class_name else self.name


__all__ = ["ModelTestCaseKey"]
