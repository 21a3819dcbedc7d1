# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Artifact retrieval into scoped transient storage.

The retriever lists a run's artifacts, applies the artifact filter and
downloads candidates into a temporary directory whose lifetime is bound to an
``async with`` block. The directory is removed on every exit path,
including exceptions and cancellation.

Example:
    >>> retriever = ArtifactRetriever(source)
    >>> async with retriever.workspace(job_id) as workspace:
    ...     for artifact in await retriever.list_candidates(repo, run_id):
    ...         path = await retriever.download(repo, artifact, workspace)
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import UUID

from flakeguard.enums import EnumErrorCode, EnumInfraTransportType
from flakeguard.errors import (
    ArchiveExtractionError,
    InfraTimeoutError,
    ModelInfraErrorContext,
)
from flakeguard.ingestion.artifact_filter import select_artifacts
from flakeguard.ingestion.protocol_artifact_source import ProtocolArtifactSource
from flakeguard.models import ModelArtifact, ModelArtifactFilter, ModelRepositoryRef

logger = logging.getLogger(__name__)

_DEFAULT_DOWNLOAD_TIMEOUT_SECONDS: float = 300.0


class ArtifactRetriever:
    """Lists, filters and downloads CI artifacts.

    Args:
        source: CI provider artifact source
        download_timeout_seconds: Upper bound on one whole download
        temp_root: Parent directory for workspaces (system default when None)
    """

    def __init__(
        self,
        source: ProtocolArtifactSource,
        download_timeout_seconds: float = _DEFAULT_DOWNLOAD_TIMEOUT_SECONDS,
        temp_root: Path | None = None,
    ) -> None:
        self._source = source
        self._download_timeout_seconds = download_timeout_seconds
        self._temp_root = temp_root

    @asynccontextmanager
    async def workspace(self, label: str) -> AsyncIterator[Path]:
        """Yield a fresh directory that is deleted when the block exits."""
        path = Path(
            tempfile.mkdtemp(
                prefix=f"flakeguard-{label}-",
                dir=str(self._temp_root) if self._temp_root else None,
            )
        )
        try:
            yield path
        finally:
            await asyncio.to_thread(shutil.rmtree, path, ignore_errors=True)
            logger.debug("Workspace removed", extra={"workspace": str(path)})

    async def list_candidates(
        self,
        repository: ModelRepositoryRef,
        run_id: int,
        artifact_filter: ModelArtifactFilter | None = None,
        correlation_id: UUID | None = None,
    ) -> tuple[list[ModelArtifact], int]:
        """List the run's artifacts and filter them.

        Returns:
            (candidates, total listed)
        """
        artifacts = await self._source.list_artifacts(
            repository, run_id, correlation_id=correlation_id
        )
        candidates = select_artifacts(artifacts, artifact_filter)
        logger.info(
            "Artifacts discovered",
            extra={
                "repository": repository.full_name,
                "run_id": run_id,
                "listed": len(artifacts),
                "candidates": len(candidates),
                "correlation_id": str(correlation_id) if correlation_id else None,
            },
        )
        return candidates, len(artifacts)

    async def download(
        self,
        repository: ModelRepositoryRef,
        artifact: ModelArtifact,
        workspace: Path,
        max_size_bytes: int | None = None,
        correlation_id: UUID | None = None,
    ) -> Path | None:
        """Download one artifact into ``workspace``.

        Returns:
            Path of the downloaded archive, or None when the provider reports
            the artifact missing or expired.

        Raises:
            InfraTimeoutError: If the download exceeds its time budget.
            ArchiveExtractionError: If more than ``max_size_bytes`` arrive.
        """
        destination = workspace / f"artifact-{artifact.id}.bin"
        try:
            received = await asyncio.wait_for(
                self._download_to(
                    repository, artifact, destination, max_size_bytes, correlation_id
                ),
                timeout=self._download_timeout_seconds,
            )
        except TimeoutError as e:
            raise InfraTimeoutError(
                f"Download of artifact {artifact.name} exceeded "
                f"{self._download_timeout_seconds}s",
                context=ModelInfraErrorContext(
                    transport_type=EnumInfraTransportType.HTTP,
                    operation="download_artifact",
                    target_name=artifact.name,
                    correlation_id=correlation_id,
                ),
                timeout_seconds=self._download_timeout_seconds,
            ) from e

        if received == 0:
            destination.unlink(missing_ok=True)
            return None
        return destination

    async def _download_to(
        self,
        repository: ModelRepositoryRef,
        artifact: ModelArtifact,
        destination: Path,
        max_size_bytes: int | None,
        correlation_id: UUID | None,
    ) -> int:
        received = 0
        with destination.open("wb") as handle:
            async for chunk in self._source.stream_artifact(
                repository, artifact.id, correlation_id=correlation_id
            ):
                received += len(chunk)
                if max_size_bytes is not None and received > max_size_bytes:
                    raise ArchiveExtractionError(
                        f"Artifact {artifact.name} exceeds {max_size_bytes} bytes",
                        error_code=EnumErrorCode.ARCHIVE_TOO_LARGE,
                        context=ModelInfraErrorContext(
                            transport_type=EnumInfraTransportType.HTTP,
                            operation="download_artifact",
                            target_name=artifact.name,
                            correlation_id=correlation_id,
                        ),
                    )
                handle.write(chunk)
        logger.debug(
            "Artifact downloaded",
            extra={
                "artifact_name": artifact.name,
                "bytes": received,
                "correlation_id": str(correlation_id) if correlation_id else None,
            },
        )
        return received


__all__: list[str] = ["ArtifactRetriever"]
