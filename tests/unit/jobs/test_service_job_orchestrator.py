# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for ServiceJobOrchestrator.

Pipelines are scripted fakes; the job store is the in-memory implementation.
Retries use a zero base delay so backoff never slows the suite down.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from prometheus_client import CollectorRegistry
from pydantic import BaseModel

from flakeguard.enums import (
    EnumErrorCode,
    EnumJobKind,
    EnumJobPhase,
    EnumJobPriority,
    EnumJobStatus,
)
from flakeguard.errors import (
    ArchiveExtractionError,
    InfraTimeoutError,
    InfraUnavailableError,
    JobNotFoundError,
)
from flakeguard.jobs import (
    InMemoryJobStore,
    ProgressCallback,
    ServiceJobOrchestrator,
    job_id_for,
)
from flakeguard.models import (
    ModelAnalysisResult,
    ModelIngestionResult,
    ModelJob,
    ModelJobError,
    ModelJobProgress,
    ModelJobSubmission,
    ModelRepositoryRef,
    ModelRetryState,
)
from flakeguard.observability import FlakeGuardMetrics

INGESTED = ModelIngestionResult(
    artifacts_found=1, artifacts_processed=1, total_tests=3, passed=3
)


class ScriptedPipeline:
    """Returns or raises the scripted outcomes in order, repeating the last."""

    def __init__(self, outcomes: Sequence[BaseModel | Exception]) -> None:
        self.outcomes = list(outcomes)
        self.jobs: list[ModelJob] = []

    async def run(self, job: ModelJob, progress: ProgressCallback) -> BaseModel:
        self.jobs.append(job)
        await progress(ModelJobProgress(phase=EnumJobPhase.PROCESSING, total=1))
        outcome = self.outcomes[min(len(self.jobs), len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class BlockingPipeline:
    """Blocks until released, then reports progress and returns."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def run(self, job: ModelJob, progress: ProgressCallback) -> BaseModel:
        self.entered.set()
        await self.release.wait()
        await progress(ModelJobProgress(phase=EnumJobPhase.STORING, total=1))
        return INGESTED


class SleepingPipeline:
    async def run(self, job: ModelJob, progress: ProgressCallback) -> BaseModel:
        await asyncio.sleep(10)
        return INGESTED


def make_orchestrator(
    store: InMemoryJobStore,
    ingest: object,
    analyze: object | None = None,
    max_attempts: int = 3,
    **kwargs: object,
) -> ServiceJobOrchestrator:
    pipelines = {EnumJobKind.INGEST: ingest}
    if analyze is not None:
        pipelines[EnumJobKind.ANALYZE] = analyze
    kwargs.setdefault("chain_analysis", False)
    kwargs.setdefault("concurrency", 1)
    return ServiceJobOrchestrator(
        store,
        pipelines,  # type: ignore[arg-type]
        retry_policy=ModelRetryState(max_attempts=max_attempts, base_delay_seconds=0.0),
        **kwargs,  # type: ignore[arg-type]
    )


async def run_to_idle(orchestrator: ServiceJobOrchestrator) -> None:
    await orchestrator.start()
    try:
        await asyncio.wait_for(orchestrator.drain(), timeout=5)
    finally:
        await orchestrator.stop()


def submission(
    repository: ModelRepositoryRef,
    run_id: int = 4242,
    priority: EnumJobPriority = EnumJobPriority.NORMAL,
) -> ModelJobSubmission:
    return ModelJobSubmission(
        run_id=run_id, repository=repository, branch="main", priority=priority
    )


@pytest.fixture
def store() -> InMemoryJobStore:
    return InMemoryJobStore()


# =============================================================================
# Submission and queries
# =============================================================================


class TestSubmission:
    @pytest.mark.asyncio
    async def test_submit_returns_queued_job_with_estimate(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        orchestrator = make_orchestrator(store, ScriptedPipeline([INGESTED]))
        before = datetime.now(UTC)

        response = await orchestrator.submit(submission(repository))

        assert response.job_id == job_id_for(repository, 4242, EnumJobKind.INGEST)
        assert response.status is EnumJobStatus.QUEUED
        assert response.deduplicated is False
        assert response.estimated_completion > before

    @pytest.mark.asyncio
    async def test_resubmitting_active_job_is_deduplicated(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = ScriptedPipeline([INGESTED])
        orchestrator = make_orchestrator(store, pipeline)

        first = await orchestrator.submit(submission(repository))
        second = await orchestrator.submit(submission(repository))
        await run_to_idle(orchestrator)

        assert second.job_id == first.job_id
        assert second.deduplicated is True
        assert len(pipeline.jobs) == 1

    @pytest.mark.asyncio
    async def test_resubmitting_terminal_job_processes_again(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = ScriptedPipeline([INGESTED])
        orchestrator = make_orchestrator(store, pipeline)
        await orchestrator.submit(submission(repository))
        await run_to_idle(orchestrator)

        again = await orchestrator.submit(submission(repository))
        await run_to_idle(orchestrator)

        assert again.deduplicated is False
        assert len(pipeline.jobs) == 2
        assert (await orchestrator.get_job(again.job_id)).status is EnumJobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unknown_job_raises(self, store: InMemoryJobStore) -> None:
        orchestrator = make_orchestrator(store, ScriptedPipeline([INGESTED]))

        with pytest.raises(JobNotFoundError):
            await orchestrator.get_status(uuid4())
        with pytest.raises(JobNotFoundError):
            await orchestrator.cancel(uuid4())


# =============================================================================
# Execution outcomes
# =============================================================================


class TestExecution:
    @pytest.mark.asyncio
    async def test_successful_job_completes(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        orchestrator = make_orchestrator(store, ScriptedPipeline([INGESTED]))
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)
        status = await orchestrator.get_status(response.job_id)

        assert status.status is EnumJobStatus.COMPLETED
        assert status.phase is EnumJobPhase.COMPLETE
        assert status.percentage == 100.0
        assert status.attempts == 1
        assert status.result_summary is not None
        assert status.result_summary["total_tests"] == 3
        assert status.errors == ()

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = ScriptedPipeline([InfraTimeoutError("listing timed out"), INGESTED])
        orchestrator = make_orchestrator(store, pipeline)
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)
        job = await orchestrator.get_job(response.job_id)

        assert job.status is EnumJobStatus.COMPLETED
        assert job.attempts == 2
        assert [(e.code, e.attempt) for e in job.errors] == [(EnumErrorCode.TIMEOUT, 1)]

    @pytest.mark.asyncio
    async def test_permanent_error_fails_without_retry(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = ScriptedPipeline([ArchiveExtractionError("not an archive")])
        orchestrator = make_orchestrator(store, pipeline)
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)
        job = await orchestrator.get_job(response.job_id)

        assert job.status is EnumJobStatus.FAILED
        assert job.attempts == 1
        assert job.finished_at is not None
        assert job.errors[0].code is EnumErrorCode.ARCHIVE_INVALID

    @pytest.mark.asyncio
    async def test_retries_stop_at_max_attempts(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = ScriptedPipeline([InfraUnavailableError("GitHub API unavailable")])
        orchestrator = make_orchestrator(store, pipeline)
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)
        job = await orchestrator.get_job(response.job_id)

        assert job.status is EnumJobStatus.FAILED
        assert job.attempts == 3
        assert [e.attempt for e in job.errors] == [1, 2, 3]
        assert {e.code for e in job.errors} == {EnumErrorCode.SERVICE_UNAVAILABLE}

    @pytest.mark.asyncio
    async def test_attempt_timeout(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        orchestrator = make_orchestrator(
            store, SleepingPipeline(), max_attempts=1, job_timeout_seconds=0.05
        )
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)
        job = await orchestrator.get_job(response.job_id)

        assert job.status is EnumJobStatus.FAILED
        assert job.errors[0].code is EnumErrorCode.TIMEOUT

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_not_retried(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = ScriptedPipeline([RuntimeError("boom")])
        orchestrator = make_orchestrator(store, pipeline)
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)
        job = await orchestrator.get_job(response.job_id)

        assert job.status is EnumJobStatus.FAILED
        assert job.attempts == 1
        assert job.errors[0].code is EnumErrorCode.OPERATION_FAILED

    @pytest.mark.asyncio
    async def test_missing_pipeline_fails_job(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        orchestrator = make_orchestrator(store, ScriptedPipeline([INGESTED]))
        response = await orchestrator.submit(
            ModelJobSubmission(
                run_id=7, repository=repository, kind=EnumJobKind.ANALYZE
            )
        )

        await run_to_idle(orchestrator)
        job = await orchestrator.get_job(response.job_id)

        assert job.status is EnumJobStatus.FAILED
        assert job.errors[0].code is EnumErrorCode.INVARIANT_VIOLATION

    @pytest.mark.asyncio
    async def test_all_artifacts_failing_fails_job(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        result = ModelIngestionResult(
            artifacts_found=2,
            artifacts_failed=2,
            errors=(
                ModelJobError(
                    code=EnumErrorCode.ARCHIVE_INVALID,
                    message="not an archive",
                    artifact_name="junit-a",
                    attempt=1,
                ),
                ModelJobError(
                    code=EnumErrorCode.ARCHIVE_INVALID,
                    message="not an archive",
                    artifact_name="junit-b",
                    attempt=1,
                ),
            ),
        )
        orchestrator = make_orchestrator(store, ScriptedPipeline([result]))
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)
        job = await orchestrator.get_job(response.job_id)

        assert job.status is EnumJobStatus.FAILED
        assert job.attempts == 1
        assert [e.code for e in job.errors] == [
            EnumErrorCode.ARCHIVE_INVALID,
            EnumErrorCode.ARCHIVE_INVALID,
            EnumErrorCode.NO_ARTIFACTS_PROCESSED,
        ]

    @pytest.mark.asyncio
    async def test_all_artifacts_failing_transiently_is_retried(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        failed = ModelIngestionResult(
            artifacts_found=1,
            artifacts_failed=1,
            errors=(
                ModelJobError(
                    code=EnumErrorCode.TIMEOUT,
                    message="download timed out",
                    artifact_name="junit",
                    attempt=1,
                ),
            ),
        )
        pipeline = ScriptedPipeline([failed, INGESTED])
        orchestrator = make_orchestrator(store, pipeline)
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)
        job = await orchestrator.get_job(response.job_id)

        assert job.status is EnumJobStatus.COMPLETED
        assert job.attempts == 2

    @pytest.mark.asyncio
    async def test_no_candidates_is_not_a_failure(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        empty = ModelIngestionResult(warnings=("No matching artifacts found",))
        orchestrator = make_orchestrator(store, ScriptedPipeline([empty]))
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)

        job = await orchestrator.get_job(response.job_id)
        assert job.status is EnumJobStatus.COMPLETED
        assert job.ingestion_result == empty

    @pytest.mark.asyncio
    async def test_partial_artifact_errors_are_kept_on_completed_job(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        error = ModelJobError(
            code=EnumErrorCode.ARCHIVE_TOO_LARGE,
            message="too large",
            artifact_name="junit-big",
            attempt=1,
        )
        partial = INGESTED.model_copy(
            update={"artifacts_found": 2, "artifacts_failed": 1, "errors": (error,)}
        )
        orchestrator = make_orchestrator(store, ScriptedPipeline([partial]))
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)
        job = await orchestrator.get_job(response.job_id)

        assert job.status is EnumJobStatus.COMPLETED
        assert job.errors == (error,)

    @pytest.mark.asyncio
    async def test_ingest_chains_analysis(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        analysis = ScriptedPipeline([ModelAnalysisResult(tests_scored=3)])
        orchestrator = make_orchestrator(
            store, ScriptedPipeline([INGESTED]), analysis, chain_analysis=True
        )
        response = await orchestrator.submit(submission(repository))

        await run_to_idle(orchestrator)

        ingest = await orchestrator.get_job(response.job_id)
        analyze = await orchestrator.get_job(
            job_id_for(repository, 4242, EnumJobKind.ANALYZE)
        )
        assert analyze.status is EnumJobStatus.COMPLETED
        assert analyze.correlation_id == ingest.correlation_id
        assert analyze.branch == "main"
        assert analyze.analysis_result == ModelAnalysisResult(tests_scored=3)
        assert len(analysis.jobs) == 1

    @pytest.mark.asyncio
    async def test_higher_priority_runs_first(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = ScriptedPipeline([INGESTED])
        orchestrator = make_orchestrator(store, pipeline)
        await orchestrator.submit(submission(repository, 1, EnumJobPriority.LOW))
        await orchestrator.submit(submission(repository, 2, EnumJobPriority.NORMAL))
        await orchestrator.submit(submission(repository, 3, EnumJobPriority.CRITICAL))
        await orchestrator.submit(submission(repository, 4, EnumJobPriority.NORMAL))

        await run_to_idle(orchestrator)

        assert [j.run_id for j in pipeline.jobs] == [3, 2, 4, 1]


# =============================================================================
# Cancellation, recovery and shutdown
# =============================================================================


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_cancel_queued_job(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = ScriptedPipeline([INGESTED])
        orchestrator = make_orchestrator(store, pipeline)
        response = await orchestrator.submit(submission(repository))

        cancelled = await orchestrator.cancel(response.job_id)
        await run_to_idle(orchestrator)

        assert cancelled.status is EnumJobStatus.CANCELLED
        assert (await orchestrator.get_job(response.job_id)).status is (
            EnumJobStatus.CANCELLED
        )
        assert pipeline.jobs == []

    @pytest.mark.asyncio
    async def test_cancel_processing_job_stops_at_next_progress(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = BlockingPipeline()
        orchestrator = make_orchestrator(store, pipeline)
        await orchestrator.start()
        try:
            response = await orchestrator.submit(submission(repository))
            await asyncio.wait_for(pipeline.entered.wait(), timeout=5)

            snapshot = await orchestrator.cancel(response.job_id)
            pipeline.release.set()
            await asyncio.wait_for(orchestrator.drain(), timeout=5)
        finally:
            await orchestrator.stop()

        assert snapshot.status is EnumJobStatus.PROCESSING
        job = await orchestrator.get_job(response.job_id)
        assert job.status is EnumJobStatus.CANCELLED
        assert job.finished_at is not None

    @pytest.mark.asyncio
    async def test_cancel_terminal_job_is_noop(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        orchestrator = make_orchestrator(store, ScriptedPipeline([INGESTED]))
        response = await orchestrator.submit(submission(repository))
        await run_to_idle(orchestrator)

        job = await orchestrator.cancel(response.job_id)

        assert job.status is EnumJobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_interrupted_job_is_recovered_on_start(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        now = datetime.now(UTC)
        stale = ModelJob(
            id=job_id_for(repository, 99, EnumJobKind.INGEST),
            kind=EnumJobKind.INGEST,
            repository=repository,
            run_id=99,
            status=EnumJobStatus.PROCESSING,
            attempts=1,
            correlation_id=uuid4(),
            created_at=now,
            updated_at=now,
        )
        await store.create_if_absent(stale)
        pipeline = ScriptedPipeline([INGESTED])
        orchestrator = make_orchestrator(store, pipeline)

        await run_to_idle(orchestrator)

        job = await orchestrator.get_job(stale.id)
        assert job.status is EnumJobStatus.COMPLETED
        assert job.attempts == 2
        assert [j.run_id for j in pipeline.jobs] == [99]

    @pytest.mark.asyncio
    async def test_stop_puts_running_job_back_to_queued(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = BlockingPipeline()
        orchestrator = make_orchestrator(store, pipeline)
        await orchestrator.start()
        response = await orchestrator.submit(submission(repository))
        await asyncio.wait_for(pipeline.entered.wait(), timeout=5)

        await orchestrator.stop()

        assert orchestrator.is_running is False
        job = await orchestrator.get_job(response.job_id)
        assert job.status is EnumJobStatus.QUEUED

    @pytest.mark.asyncio
    async def test_start_twice_is_ignored(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        pipeline = ScriptedPipeline([INGESTED])
        orchestrator = make_orchestrator(store, pipeline)
        await orchestrator.submit(submission(repository))

        await orchestrator.start()
        await run_to_idle(orchestrator)

        assert len(pipeline.jobs) == 1


class TestMetrics:
    @pytest.mark.asyncio
    async def test_job_counters(
        self, store: InMemoryJobStore, repository: ModelRepositoryRef
    ) -> None:
        registry = CollectorRegistry()
        metrics = FlakeGuardMetrics(registry)
        pipeline = ScriptedPipeline([InfraTimeoutError("slow"), INGESTED])
        orchestrator = make_orchestrator(store, pipeline, metrics=metrics)

        await orchestrator.submit(submission(repository))
        await orchestrator.submit(submission(repository))
        await run_to_idle(orchestrator)

        def sample(name: str, **labels: str) -> float | None:
            return registry.get_sample_value(name, labels)

        assert sample(
            "flakeguard_jobs_submitted_total", kind="ingest", deduplicated="false"
        ) == 1.0
        assert sample(
            "flakeguard_jobs_submitted_total", kind="ingest", deduplicated="true"
        ) == 1.0
        assert sample("flakeguard_job_retries_total", kind="ingest") == 1.0
        assert sample("flakeguard_jobs_completed_total", kind="ingest") == 1.0
        assert sample("flakeguard_jobs_queued") == 0.0
