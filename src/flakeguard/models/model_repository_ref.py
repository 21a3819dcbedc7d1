# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Repository Coordinates Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelRepositoryRef(BaseModel):
    """Tenant-scoped repository coordinates.

    Attributes:
        org_id: Tenant (organization) identifier used to scope every query
        owner: Repository owner on the CI provider
        repo: Repository name
        installation_id: Provider installation id, when app auth is used
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    org_id: str = Field(..., min_length=1)
    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    installation_id: int | None = Field(default=None)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


__all__ = ["ModelRepositoryRef"]
