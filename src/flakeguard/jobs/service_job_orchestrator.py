# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job orchestrator: idempotent submission, worker pool, retries.

Lifecycle:
    queued -> processing -> {completed, failed, cancelled}

    A failed attempt whose error is transient (timeouts, connection loss,
    5xx/rate limiting) goes back to queued after an exponential backoff,
    until ``max_attempts`` is reached. Non-transient errors fail the job at
    once. Every attempt's errors accumulate on the job.

Idempotency:
    The job id is a uuid5 over (tenant, repository, run id, kind). While a
    job with that id is queued or processing, re-submission returns it. A
    terminal job is replaced, so a manually re-triggered run is processed
    again.

Workers:
    ``concurrency`` worker tasks draw job ids from an in-process priority
    queue fed by ``submit``; the durable job store is the source of truth and
    queued or interrupted jobs are re-enqueued on ``start``. Each attempt runs
    under ``asyncio.wait_for`` with ``job_timeout_seconds``.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from uuid import NAMESPACE_URL, UUID, uuid4, uuid5

from pydantic import BaseModel

from flakeguard.enums import EnumErrorCode, EnumJobKind, EnumJobPhase, EnumJobStatus
from flakeguard.errors import (
    FlakeGuardError,
    InvariantViolationError,
    JobCancelledError,
    JobNotFoundError,
)
from flakeguard.jobs.protocol_job_pipeline import ProgressCallback, ProtocolJobPipeline
from flakeguard.jobs.protocol_job_store import ProtocolJobStore
from flakeguard.models import (
    ModelAnalysisResult,
    ModelIngestionResult,
    ModelJob,
    ModelJobError,
    ModelJobProgress,
    ModelJobStatusResponse,
    ModelJobSubmission,
    ModelJobSubmissionResponse,
    ModelRepositoryRef,
    ModelRetryState,
)
from flakeguard.observability import FlakeGuardMetrics
from flakeguard.utils import sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY: int = 3
DEFAULT_JOB_TIMEOUT_SECONDS: float = 300.0
DEFAULT_AVERAGE_JOB_SECONDS: float = 60.0
_DURATION_SMOOTHING: float = 0.2

_JOB_NAMESPACE: UUID = uuid5(NAMESPACE_URL, "https://flakeguard.dev/jobs")
_TRANSIENT_CODES: frozenset[EnumErrorCode] = frozenset(
    {
        EnumErrorCode.TIMEOUT,
        EnumErrorCode.CONNECTION_ERROR,
        EnumErrorCode.SERVICE_UNAVAILABLE,
    }
)


def job_id_for(repository: ModelRepositoryRef, run_id: int, kind: EnumJobKind) -> UUID:
    """Deterministic job id for one (repository, run, kind)."""
    return uuid5(
        _JOB_NAMESPACE,
        f"{repository.org_id}/{repository.full_name}/{run_id}/{kind.value}",
    )


class ServiceJobOrchestrator:
    """Schedules ingestion and analysis jobs onto a bounded worker pool.

    Args:
        store: Durable job store
        pipelines: Pipeline per job kind
        concurrency: Number of worker tasks
        job_timeout_seconds: Time budget of a single attempt
        retry_policy: Attempt ceiling and backoff; 3 attempts, 5s base,
            x2 multiplier, 30s cap when None
        chain_analysis: Submit an ANALYZE job after each completed INGEST job
        metrics: Optional Prometheus metrics
    """

    def __init__(
        self,
        store: ProtocolJobStore,
        pipelines: Mapping[EnumJobKind, ProtocolJobPipeline],
        concurrency: int = DEFAULT_CONCURRENCY,
        job_timeout_seconds: float = DEFAULT_JOB_TIMEOUT_SECONDS,
        retry_policy: ModelRetryState | None = None,
        chain_analysis: bool = True,
        metrics: FlakeGuardMetrics | None = None,
    ) -> None:
        self._store = store
        self._pipelines = dict(pipelines)
        self._concurrency = max(1, concurrency)
        self._job_timeout = job_timeout_seconds
        self._retry = retry_policy or ModelRetryState()
        self._chain_analysis = chain_analysis
        self._metrics = metrics

        self._queue: asyncio.PriorityQueue[tuple[int, int, UUID]] = asyncio.PriorityQueue()
        self._sequence = itertools.count()
        self._enqueued: set[UUID] = set()
        self._cancel_requested: set[UUID] = set()
        self._retry_timers: set[asyncio.Task[None]] = set()
        self._workers: list[asyncio.Task[None]] = []
        self._lock = asyncio.Lock()
        self._running = False
        self._average_job_seconds = DEFAULT_AVERAGE_JOB_SECONDS
        self._in_flight = 0

    @property
    def is_running(self) -> bool:
        return self._running

    # -- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Recover persisted jobs and start the worker pool."""
        async with self._lock:
            if self._running:
                logger.warning("Job orchestrator already running, ignoring start()")
                return
            recovered = await self._recover()
            self._running = True
            self._workers = [
                asyncio.create_task(self._worker_loop(i), name=f"flakeguard-worker-{i}")
                for i in range(self._concurrency)
            ]
        logger.info(
            "Job orchestrator started",
            extra={
                "concurrency": self._concurrency,
                "recovered_jobs": recovered,
                "job_timeout_seconds": self._job_timeout,
            },
        )

    async def stop(self) -> None:
        """Stop workers. Interrupted jobs are put back to queued."""
        async with self._lock:
            if not self._running:
                return
            self._running = False
            tasks = [*self._workers, *self._retry_timers]
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._workers = []
            self._retry_timers.clear()
        logger.info("Job orchestrator stopped")

    async def drain(self) -> None:
        """Wait until no job is queued, running or waiting for a retry."""
        while True:
            await self._queue.join()
            pending = [t for t in self._retry_timers if not t.done()]
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                continue
            # A retry timer may re-enqueue between join() waking and resuming.
            if self._queue.empty() and self._in_flight == 0:
                return

    async def _recover(self) -> int:
        recovered = 0
        for job in await self._store.list_by_status(EnumJobStatus.PROCESSING):
            job = job.model_copy(
                update={
                    "status": EnumJobStatus.QUEUED,
                    "progress": ModelJobProgress(),
                    "updated_at": datetime.now(UTC),
                }
            )
            await self._store.save(job)
            self._enqueue(job)
            recovered += 1
        for job in await self._store.list_by_status(EnumJobStatus.QUEUED):
            if job.id not in self._enqueued:
                self._enqueue(job)
                recovered += 1
        return recovered

    # -- submission and queries ---------------------------------------------

    async def submit(self, submission: ModelJobSubmission) -> ModelJobSubmissionResponse:
        now = datetime.now(UTC)
        job = ModelJob(
            id=job_id_for(submission.repository, submission.run_id, submission.kind),
            kind=submission.kind,
            repository=submission.repository,
            run_id=submission.run_id,
            run_attempt=submission.run_attempt,
            branch=submission.branch,
            commit_sha=submission.commit_sha,
            artifact_filter=submission.artifact_filter,
            priority=submission.priority,
            labels=submission.labels,
            correlation_id=submission.correlation_id or uuid4(),
            max_attempts=self._retry.max_attempts,
            created_at=now,
            updated_at=now,
        )
        stored, created = await self._store.create_if_absent(job)
        if created:
            self._enqueue(stored)
        if self._metrics is not None:
            self._metrics.record_job_submitted(stored.kind, deduplicated=not created)

        logger.info(
            "Job submitted" if created else "Active job exists, returning it",
            extra={
                "job_id": str(stored.id),
                "kind": stored.kind.value,
                "repository": stored.repository.full_name,
                "run_id": stored.run_id,
                "correlation_id": str(stored.correlation_id),
            },
        )
        return ModelJobSubmissionResponse(
            job_id=stored.id,
            status=stored.status,
            estimated_completion=self._estimate_completion(now),
            deduplicated=not created,
        )

    async def get_job(self, job_id: UUID) -> ModelJob:
        job = await self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def get_status(self, job_id: UUID) -> ModelJobStatusResponse:
        job = await self.get_job(job_id)
        return ModelJobStatusResponse(
            job_id=job.id,
            kind=job.kind,
            status=job.status,
            phase=job.progress.phase,
            percentage=job.progress.percentage,
            attempts=job.attempts,
            correlation_id=job.correlation_id,
            result_summary=job.result_summary(),
            errors=job.errors,
        )

    async def cancel(self, job_id: UUID) -> ModelJob:
        """Cancel a job.

        Queued jobs are cancelled immediately; processing jobs stop at their
        next progress report. Terminal jobs are returned unchanged.
        """
        job = await self.get_job(job_id)
        if job.status is EnumJobStatus.QUEUED:
            now = datetime.now(UTC)
            job = job.model_copy(
                update={
                    "status": EnumJobStatus.CANCELLED,
                    "updated_at": now,
                    "finished_at": now,
                }
            )
            await self._store.save(job)
            logger.info("Job cancelled", extra={"job_id": str(job_id)})
        elif job.status is EnumJobStatus.PROCESSING:
            self._cancel_requested.add(job_id)
            logger.info("Cancellation requested", extra={"job_id": str(job_id)})
        return job

    def _estimate_completion(self, now: datetime) -> datetime:
        waves = self._queue.qsize() // self._concurrency + 1
        return now + timedelta(seconds=waves * self._average_job_seconds)

    def _enqueue(self, job: ModelJob) -> None:
        if job.id in self._enqueued:
            return
        self._enqueued.add(job.id)
        self._queue.put_nowait((-job.priority.rank, next(self._sequence), job.id))
        if self._metrics is not None:
            self._metrics.set_jobs_queued(self._queue.qsize())

    # -- execution ----------------------------------------------------------

    async def _worker_loop(self, index: int) -> None:
        logger.debug("Worker started", extra={"worker": index})
        while True:
            _, _, job_id = await self._queue.get()
            self._enqueued.discard(job_id)
            self._in_flight += 1
            try:
                await self._execute(job_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(
                    "Error processing job, continuing",
                    extra={
                        "job_id": str(job_id),
                        "error": sanitize_error_message(e),
                        "error_type": type(e).__name__,
                    },
                )
            finally:
                self._in_flight -= 1
                self._queue.task_done()
                if self._metrics is not None:
                    self._metrics.set_jobs_queued(self._queue.qsize())

    async def _execute(self, job_id: UUID) -> None:
        job = await self._store.get(job_id)
        if job is None or job.status is not EnumJobStatus.QUEUED:
            return

        now = datetime.now(UTC)
        job = job.model_copy(
            update={
                "status": EnumJobStatus.PROCESSING,
                "attempts": job.attempts + 1,
                "progress": ModelJobProgress(),
                "started_at": job.started_at or now,
                "updated_at": now,
            }
        )
        await self._store.save(job)
        log_extra = {
            "job_id": str(job.id),
            "kind": job.kind.value,
            "attempt": job.attempts,
            "correlation_id": str(job.correlation_id),
        }
        logger.info("Job attempt started", extra=log_extra)

        started = time.monotonic()
        failure: tuple[tuple[ModelJobError, ...], bool] | None = None
        try:
            pipeline = self._pipelines.get(job.kind)
            if pipeline is None:
                raise InvariantViolationError(
                    f"No pipeline registered for job kind {job.kind.value}"
                )
            result = await asyncio.wait_for(
                pipeline.run(job, self._progress_reporter(job.id)),
                timeout=self._job_timeout,
            )
        except JobCancelledError:
            await self._finish_cancelled(job.id)
            return
        except TimeoutError:
            failure = (
                (
                    ModelJobError(
                        code=EnumErrorCode.TIMEOUT,
                        message=f"Job attempt exceeded {self._job_timeout}s",
                        attempt=job.attempts,
                    ),
                ),
                True,
            )
        except FlakeGuardError as e:
            failure = (
                (
                    ModelJobError(
                        code=e.error_code, message=e.message, attempt=job.attempts
                    ),
                ),
                e.retryable,
            )
        except asyncio.CancelledError:
            await self._requeue_interrupted(job.id)
            raise
        except Exception as e:
            logger.exception("Job attempt raised unexpectedly", extra=log_extra)
            failure = (
                (
                    ModelJobError(
                        code=EnumErrorCode.OPERATION_FAILED,
                        message=sanitize_error_message(e),
                        attempt=job.attempts,
                    ),
                ),
                False,
            )
        else:
            failure = self._result_failure(job, result)
            if failure is None:
                await self._complete(job.id, result, time.monotonic() - started)
                return
        finally:
            self._cancel_requested.discard(job.id)

        errors, retryable = failure
        await self._fail_attempt(job.id, errors, retryable, time.monotonic() - started)

    def _progress_reporter(self, job_id: UUID) -> ProgressCallback:
        async def report(progress: ModelJobProgress) -> None:
            if job_id in self._cancel_requested:
                raise JobCancelledError(job_id)
            current = await self._store.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            await self._store.save(
                current.model_copy(
                    update={"progress": progress, "updated_at": datetime.now(UTC)}
                )
            )

        return report

    @staticmethod
    def _result_failure(
        job: ModelJob, result: BaseModel
    ) -> tuple[tuple[ModelJobError, ...], bool] | None:
        """A run whose candidates all failed is a failure; no candidates is not."""
        if not isinstance(result, ModelIngestionResult):
            return None
        if result.artifacts_found == 0 or result.artifacts_processed > 0:
            return None
        retryable = any(e.code in _TRANSIENT_CODES for e in result.errors)
        summary = ModelJobError(
            code=EnumErrorCode.NO_ARTIFACTS_PROCESSED,
            message=(
                f"None of the {result.artifacts_found} matching artifacts "
                f"could be processed"
            ),
            attempt=job.attempts,
        )
        return (*result.errors, summary), retryable

    async def _complete(self, job_id: UUID, result: BaseModel, duration: float) -> None:
        job = await self.get_job(job_id)
        now = datetime.now(UTC)
        update: dict[str, object] = {
            "status": EnumJobStatus.COMPLETED,
            "progress": job.progress.model_copy(update={"phase": EnumJobPhase.COMPLETE}),
            "updated_at": now,
            "finished_at": now,
        }
        if isinstance(result, ModelIngestionResult):
            update["ingestion_result"] = result
            update["errors"] = (*job.errors, *result.errors)
        elif isinstance(result, ModelAnalysisResult):
            update["analysis_result"] = result
        job = job.model_copy(update=update)
        await self._store.save(job)

        self._average_job_seconds += _DURATION_SMOOTHING * (
            duration - self._average_job_seconds
        )
        if self._metrics is not None:
            self._metrics.record_job_finished(job.kind, True, duration)
        logger.info(
            "Job completed",
            extra={
                "job_id": str(job.id),
                "kind": job.kind.value,
                "attempts": job.attempts,
                "duration_seconds": round(duration, 3),
                "correlation_id": str(job.correlation_id),
            },
        )

        if self._chain_analysis and job.kind is EnumJobKind.INGEST:
            await self.submit(
                ModelJobSubmission(
                    run_id=job.run_id,
                    repository=job.repository,
                    kind=EnumJobKind.ANALYZE,
                    run_attempt=job.run_attempt,
                    branch=job.branch,
                    commit_sha=job.commit_sha,
                    priority=job.priority,
                    labels=job.labels,
                    correlation_id=job.correlation_id,
                )
            )

    async def _fail_attempt(
        self,
        job_id: UUID,
        errors: tuple[ModelJobError, ...],
        retryable: bool,
        duration: float,
    ) -> None:
        job = await self.get_job(job_id)
        now = datetime.now(UTC)
        retry = self._retry.model_copy(
            update={"attempt": job.attempts - 1, "max_attempts": job.max_attempts}
        ).next_attempt(errors[-1].message)
        all_errors = (*job.errors, *errors)

        if retryable and retry.is_retriable():
            job = job.model_copy(
                update={
                    "status": EnumJobStatus.QUEUED,
                    "errors": all_errors,
                    "updated_at": now,
                }
            )
            await self._store.save(job)
            if self._metrics is not None:
                self._metrics.record_job_retry(job.kind)
            logger.warning(
                "Job attempt failed, retrying",
                extra={
                    "job_id": str(job.id),
                    "attempt": job.attempts,
                    "max_attempts": job.max_attempts,
                    "delay_seconds": retry.delay_seconds,
                    "error_code": errors[-1].code.value,
                    "correlation_id": str(job.correlation_id),
                },
            )
            self._schedule_retry(job.id, retry.delay_seconds)
            return

        job = job.model_copy(
            update={
                "status": EnumJobStatus.FAILED,
                "errors": all_errors,
                "updated_at": now,
                "finished_at": now,
            }
        )
        await self._store.save(job)
        if self._metrics is not None:
            self._metrics.record_job_finished(job.kind, False, duration)
        logger.error(
            "Job failed",
            extra={
                "job_id": str(job.id),
                "attempts": job.attempts,
                "error_codes": [e.code.value for e in all_errors],
                "correlation_id": str(job.correlation_id),
            },
        )

    def _schedule_retry(self, job_id: UUID, delay_seconds: float) -> None:
        async def requeue() -> None:
            await asyncio.sleep(delay_seconds)
            job = await self._store.get(job_id)
            if job is not None and job.status is EnumJobStatus.QUEUED:
                self._enqueue(job)

        task = asyncio.create_task(requeue(), name=f"flakeguard-retry-{job_id}")
        self._retry_timers.add(task)
        task.add_done_callback(self._retry_timers.discard)

    async def _finish_cancelled(self, job_id: UUID) -> None:
        job = await self.get_job(job_id)
        now = datetime.now(UTC)
        await self._store.save(
            job.model_copy(
                update={
                    "status": EnumJobStatus.CANCELLED,
                    "updated_at": now,
                    "finished_at": now,
                }
            )
        )
        logger.info("Job cancelled while processing", extra={"job_id": str(job_id)})

    async def _requeue_interrupted(self, job_id: UUID) -> None:
        job = await self._store.get(job_id)
        if job is None or job.status is not EnumJobStatus.PROCESSING:
            return
        await self._store.save(
            job.model_copy(
                update={"status": EnumJobStatus.QUEUED, "updated_at": datetime.now(UTC)}
            )
        )


__all__: list[str] = [
    "DEFAULT_CONCURRENCY",
    "DEFAULT_JOB_TIMEOUT_SECONDS",
    "ServiceJobOrchestrator",
    "job_id_for",
]
