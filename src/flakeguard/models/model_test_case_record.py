# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Stored Test Case Identity Model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.models.model_test_case_key import ModelTestCaseKey


class ModelTestCaseRecord(BaseModel):
    """Persisted test case identity.

    Created on first observation and never deleted; only ``file`` and
    ``owner_team`` metadata are updated afterwards.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID
    key: ModelTestCaseKey
    file: str | None = Field(default=None)
    owner_team: str | None = Field(default=None)
    created_at: datetime


__all__ = ["ModelTestCaseRecord"]
