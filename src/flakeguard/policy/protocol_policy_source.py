# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy file source protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from flakeguard.models import ModelRepositoryRef


@runtime_checkable
class ProtocolPolicySource(Protocol):
    """Fetches the raw policy document hosted in a repository."""

    async def fetch_policy_file(
        self,
        repository: ModelRepositoryRef,
        ref: str = "HEAD",
        correlation_id: UUID | None = None,
    ) -> str | None:
        """Return the document text, or None when the repository has none.

        Raises:
            InfraTimeoutError, InfraConnectionError, InfraUnavailableError:
                Transient transport failures.
            PolicyValidationError: The path exists but is not a readable file.
        """
        ...


__all__: list[str] = ["ProtocolPolicySource"]
