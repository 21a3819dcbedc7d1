# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Artifact Source Protocol.

Defines the two operations ingestion consumes from a CI provider.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable
from uuid import UUID

from flakeguard.models import ModelArtifact, ModelRepositoryRef


@runtime_checkable
class ProtocolArtifactSource(Protocol):
    """CI provider artifact access.

    Implementations must apply timeouts to every remote call and treat
    404/expired responses as empty results rather than errors.
    """

    async def list_artifacts(
        self,
        repository: ModelRepositoryRef,
        run_id: int,
        correlation_id: UUID | None = None,
    ) -> list[ModelArtifact]:
        """List the artifacts of a workflow run.

        Args:
            repository: Repository coordinates
            run_id: CI workflow run id
            correlation_id: Job correlation ID for tracing

        Returns:
            Artifact descriptors; empty when the run is unknown.

        Raises:
            InfraTimeoutError: If the listing call times out.
            InfraConnectionError: If the provider cannot be reached.
            InfraUnavailableError: On 5xx or rate limiting.
        """
        ...

    def stream_artifact(
        self,
        repository: ModelRepositoryRef,
        artifact_id: int,
        correlation_id: UUID | None = None,
    ) -> AsyncIterator[bytes]:
        """Stream the archive bytes of one artifact.

        Yields nothing when the artifact is missing or expired.
        """
        ...


__all__: list[str] = ["ProtocolArtifactSource"]
