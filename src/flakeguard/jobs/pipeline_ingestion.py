# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Ingestion pipeline: artifacts -> reports -> occurrences.

One job attempt lists the run's artifacts, keeps the candidates that pass
the artifact filter, and then downloads, extracts and stores each candidate
with bounded concurrency. Extraction is CPU-bound and runs in a worker
thread. Every candidate produces its own ModelIngestionResult which are
combined at the end, so completion order never affects the outcome.

A failing artifact is recorded in the result's error list and does not stop
the others. Listing failures propagate and fail the attempt.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from flakeguard.enums import EnumJobPhase
from flakeguard.errors import FlakeGuardError, JobCancelledError
from flakeguard.ingestion import ArchiveExtractor, ArtifactRetriever
from flakeguard.jobs.protocol_job_pipeline import ProgressCallback
from flakeguard.models import (
    ModelArtifact,
    ModelArtifactFilter,
    ModelIngestionResult,
    ModelJob,
    ModelJobError,
    ModelJobProgress,
)
from flakeguard.observability import FlakeGuardMetrics
from flakeguard.storage import ServiceOccurrenceWriter

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACT_CONCURRENCY: int = 3


class PipelineIngestion:
    """Runs INGEST jobs."""

    def __init__(
        self,
        retriever: ArtifactRetriever,
        writer: ServiceOccurrenceWriter,
        extractor: ArchiveExtractor | None = None,
        artifact_concurrency: int = DEFAULT_ARTIFACT_CONCURRENCY,
        metrics: FlakeGuardMetrics | None = None,
        default_filter: ModelArtifactFilter | None = None,
    ) -> None:
        self._retriever = retriever
        self._writer = writer
        self._extractor = extractor or ArchiveExtractor()
        self._artifact_concurrency = max(1, artifact_concurrency)
        self._metrics = metrics
        self._default_filter = default_filter or ModelArtifactFilter()

    async def run(self, job: ModelJob, progress: ProgressCallback) -> ModelIngestionResult:
        await progress(ModelJobProgress(phase=EnumJobPhase.DISCOVERING))
        candidates, listed = await self._retriever.list_candidates(
            job.repository,
            job.run_id,
            job.artifact_filter or self._default_filter,
            correlation_id=job.correlation_id,
        )
        if not candidates:
            logger.warning(
                "No matching artifacts for run",
                extra={
                    "job_id": str(job.id),
                    "run_id": job.run_id,
                    "listed": listed,
                    "correlation_id": str(job.correlation_id),
                },
            )
            return ModelIngestionResult(
                warnings=(
                    f"No matching artifacts found for run {job.run_id} "
                    f"({listed} listed)",
                ),
            )

        total = len(candidates)
        done = 0
        done_lock = asyncio.Lock()
        semaphore = asyncio.Semaphore(self._artifact_concurrency)
        await progress(ModelJobProgress(phase=EnumJobPhase.DOWNLOADING, total=total))

        async with self._retriever.workspace(f"job-{job.id}") as workspace:

            async def process(artifact: ModelArtifact) -> ModelIngestionResult:
                nonlocal done
                async with semaphore:
                    part = await self._process_artifact(
                        job, artifact, workspace, progress, done, total
                    )
                async with done_lock:
                    done += 1
                    await progress(
                        ModelJobProgress(
                            phase=EnumJobPhase.STORING, processed=done, total=total
                        )
                    )
                return part

            tasks = [asyncio.create_task(process(a)) for a in candidates]
            try:
                parts = await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        result = ModelIngestionResult.combine(
            [ModelIngestionResult(artifacts_found=total), *parts]
        )
        if self._metrics is not None:
            self._metrics.record_tests_parsed(
                result.passed, result.failed, result.errored, result.skipped
            )
        logger.info(
            "Ingestion finished",
            extra={
                "job_id": str(job.id),
                "repository": job.repository.full_name,
                "run_id": job.run_id,
                "artifacts_processed": result.artifacts_processed,
                "artifacts_failed": result.artifacts_failed,
                "total_tests": result.total_tests,
                "correlation_id": str(job.correlation_id),
            },
        )
        return result

    async def _process_artifact(
        self,
        job: ModelJob,
        artifact: ModelArtifact,
        workspace: Path,
        progress: ProgressCallback,
        done: int,
        total: int,
    ) -> ModelIngestionResult:
        # Selection trusts the declared size; the stream is capped by the same limit.
        max_size = (job.artifact_filter or self._default_filter).max_size_bytes
        path: Path | None = None
        try:
            path = await self._retriever.download(
                job.repository,
                artifact,
                workspace,
                max_size_bytes=max_size,
                correlation_id=job.correlation_id,
            )
            if path is None:
                return ModelIngestionResult(
                    warnings=(f"{artifact.name}: artifact missing or expired",),
                )

            await progress(
                ModelJobProgress(phase=EnumJobPhase.PROCESSING, processed=done, total=total)
            )
            parsed = await asyncio.to_thread(
                self._extractor.extract, path, job.correlation_id
            )
            written = await self._writer.write_suites(
                job.repository,
                parsed.suites,
                run_id=job.run_id,
                run_attempt=job.run_attempt,
                branch=job.branch,
                commit_sha=job.commit_sha,
                observed_at=artifact.created_at,
                correlation_id=job.correlation_id,
            )
        except JobCancelledError:
            raise
        except FlakeGuardError as e:
            logger.warning(
                "Artifact failed",
                extra={
                    "job_id": str(job.id),
                    "artifact_name": artifact.name,
                    "error_code": e.error_code.value,
                    "correlation_id": str(job.correlation_id),
                },
            )
            if self._metrics is not None:
                self._metrics.record_artifact_failed(e.error_code.value)
            return ModelIngestionResult(
                artifacts_failed=1,
                errors=(
                    ModelJobError(
                        code=e.error_code,
                        message=e.message,
                        artifact_name=artifact.name,
                        attempt=max(job.attempts, 1),
                    ),
                ),
            )
        finally:
            if path is not None:
                await asyncio.to_thread(path.unlink, missing_ok=True)

        if self._metrics is not None:
            self._metrics.record_artifact_processed()
        return written.model_copy(
            update={
                "artifacts_processed": 1,
                "warnings": tuple(f"{artifact.name}: {w}" for w in parsed.warnings),
            }
        )


__all__: list[str] = ["DEFAULT_ARTIFACT_CONCURRENCY", "PipelineIngestion"]
