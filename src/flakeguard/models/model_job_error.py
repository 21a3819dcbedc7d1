# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Error Entry Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumErrorCode


class ModelJobError(BaseModel):
    """One entry in a job's accumulated error list."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: EnumErrorCode
    message: str
    artifact_name: str | None = Field(default=None)
    attempt: int | None = Field(default=None, ge=1)


__all__ = ["ModelJobError"]
