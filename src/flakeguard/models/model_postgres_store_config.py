# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""PostgreSQL Store Configuration Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelPostgresStoreConfig(BaseModel):
    """Connection pool settings shared by the PostgreSQL stores.

    Security:
        The DSN contains credentials; it is excluded from repr and never
        logged.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    dsn: str = Field(..., min_length=1, repr=False)
    pool_min_size: int = Field(default=1, ge=1)
    pool_max_size: int = Field(default=10, ge=1)
    command_timeout: float = Field(default=30.0, gt=0.0)


__all__ = ["ModelPostgresStoreConfig"]
