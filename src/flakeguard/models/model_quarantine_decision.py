# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Quarantine Decision Model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumQuarantineState


class ModelQuarantineDecision(BaseModel):
    """State transition record for quarantining one test case."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID
    org_id: str
    test_id: UUID
    state: EnumQuarantineState
    rationale: str
    actor: str
    created_at: datetime
    updated_at: datetime
    until: datetime | None = Field(default=None)

    def is_active_at(self, now: datetime) -> bool:
        """ACTIVE and not past its expiry."""
        if self.state is not EnumQuarantineState.ACTIVE:
            return False
        return self.until is None or self.until > now


__all__ = ["ModelQuarantineDecision"]
