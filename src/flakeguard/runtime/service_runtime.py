# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""FlakeGuard runtime assembly.

Builds every collaborator from a ModelRuntimeConfig and owns their
lifecycles. Nothing is created at import time; tests inject in-memory stores
and fake sources through the constructor.

Startup Order:
    1. PostgreSQL stores (when a DSN is configured)
    2. Policy cache sweeper
    3. Job orchestrator (re-enqueues persisted jobs)

Shutdown runs in reverse order and closes the HTTP clients last.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
import time
from uuid import uuid4

from flakeguard.enums import EnumJobKind
from flakeguard.errors import FlakeGuardError
from flakeguard.ingestion import (
    ArchiveExtractor,
    ArtifactRetriever,
    ArtifactSourceGitHub,
    ProtocolArtifactSource,
)
from flakeguard.jobs import (
    DecisionSinkLogging,
    InMemoryJobStore,
    PipelineAnalysis,
    PipelineIngestion,
    ProtocolDecisionSink,
    ProtocolJobStore,
    ServiceJobOrchestrator,
    StoreJobPostgres,
)
from flakeguard.models import ModelPostgresStoreConfig, ModelRetryState
from flakeguard.observability import FlakeGuardMetrics
from flakeguard.policy import (
    PolicyEngine,
    PolicySourceGitHub,
    ProtocolPolicySource,
    ServiceQuarantine,
)
from flakeguard.runtime.model_runtime_config import ModelRuntimeConfig
from flakeguard.scoring import FlakinessScorer
from flakeguard.storage import (
    InMemoryTestHistoryStore,
    ProtocolTestHistoryStore,
    ServiceOccurrenceWriter,
    StoreTestHistoryPostgres,
)

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_GRACE_SECONDS: float = 30.0


class FlakeGuardRuntime:
    """Owns stores, sources, engines, pipelines and the job orchestrator.

    Args:
        config: Runtime settings
        history_store: Overrides the store built from ``config``
        job_store: Overrides the job store built from ``config``
        artifact_source: Overrides the GitHub artifact source
        policy_source: Overrides the GitHub policy file source
        sink: Destination of analysis results; logs them when None
        metrics: Prometheus metrics; a private registry is used when None
    """

    def __init__(
        self,
        config: ModelRuntimeConfig,
        history_store: ProtocolTestHistoryStore | None = None,
        job_store: ProtocolJobStore | None = None,
        artifact_source: ProtocolArtifactSource | None = None,
        policy_source: ProtocolPolicySource | None = None,
        sink: ProtocolDecisionSink | None = None,
        metrics: FlakeGuardMetrics | None = None,
    ) -> None:
        self.config = config
        self.metrics = metrics or FlakeGuardMetrics()

        self._pg_stores: list[StoreTestHistoryPostgres | StoreJobPostgres] = []
        pg_config = (
            ModelPostgresStoreConfig(dsn=config.database_dsn)
            if config.database_dsn
            else None
        )
        if history_store is None:
            if pg_config is not None:
                history_store = StoreTestHistoryPostgres(pg_config)
                self._pg_stores.append(history_store)
            else:
                history_store = InMemoryTestHistoryStore()
        if job_store is None:
            if pg_config is not None:
                job_store = StoreJobPostgres(pg_config)
                self._pg_stores.append(job_store)
            else:
                job_store = InMemoryJobStore()
        self.history_store = history_store
        self.job_store = job_store

        self._owned_sources: list[ArtifactSourceGitHub | PolicySourceGitHub] = []
        if artifact_source is None:
            artifact_source = ArtifactSourceGitHub(
                token=config.github_token,
                api_url=config.github_api_url,
                timeout_seconds=config.http_timeout_seconds,
            )
            self._owned_sources.append(artifact_source)
        if policy_source is None:
            policy_source = PolicySourceGitHub(
                token=config.github_token,
                api_url=config.github_api_url,
                timeout_seconds=config.http_timeout_seconds,
            )
            self._owned_sources.append(policy_source)

        self.policy_engine = PolicyEngine(
            source=policy_source,
            ttl_seconds=config.policy_cache_ttl_seconds,
            metrics=self.metrics,
        )
        self.quarantine = ServiceQuarantine(history_store)
        self.writer = ServiceOccurrenceWriter(history_store)
        self.orchestrator = ServiceJobOrchestrator(
            store=job_store,
            pipelines={
                EnumJobKind.INGEST: PipelineIngestion(
                    retriever=ArtifactRetriever(artifact_source),
                    writer=self.writer,
                    extractor=ArchiveExtractor(),
                    artifact_concurrency=config.artifact_concurrency,
                    metrics=self.metrics,
                ),
                EnumJobKind.ANALYZE: PipelineAnalysis(
                    store=history_store,
                    policy_engine=self.policy_engine,
                    quarantine=self.quarantine,
                    scorer=FlakinessScorer(),
                    sink=sink or DecisionSinkLogging(),
                ),
            },
            concurrency=config.worker_concurrency,
            job_timeout_seconds=config.job_timeout_seconds,
            retry_policy=ModelRetryState(max_attempts=config.max_job_attempts),
            metrics=self.metrics,
        )
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            return
        for store in self._pg_stores:
            await store.initialize()
        await self.policy_engine.start_sweeper()
        await self.orchestrator.start()
        self._started = True
        logger.info(
            "FlakeGuard runtime started",
            extra={
                "persistent": bool(self._pg_stores),
                "worker_concurrency": self.config.worker_concurrency,
            },
        )

    async def stop(self) -> None:
        """Release everything start() acquired. Safe after a failed start."""
        self._started = False
        await self.orchestrator.stop()
        await self.policy_engine.stop()
        for store in reversed(self._pg_stores):
            await store.shutdown()
        for source in self._owned_sources:
            await source.close()
        logger.info("FlakeGuard runtime stopped")


async def run_worker(
    config: ModelRuntimeConfig,
    shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS,
) -> int:
    """Run the worker until SIGINT/SIGTERM. Returns the process exit code."""
    correlation_id = uuid4()
    runtime = FlakeGuardRuntime(config)
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_shutdown(sig: signal.Signals) -> None:
        logger.info(
            "Received %s, initiating graceful shutdown... (correlation_id=%s)",
            sig.name,
            correlation_id,
        )
        shutdown_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, handle_shutdown, sig)
    else:

        def windows_handler(signum: int, frame: object) -> None:
            loop.call_soon_threadsafe(handle_shutdown, signal.Signals(signum))

        signal.signal(signal.SIGINT, windows_handler)

    try:
        await runtime.start()
    except FlakeGuardError as e:
        logger.error(
            "Runtime failed to start: %s (correlation_id=%s)",
            e,
            correlation_id,
            extra={"error_type": type(e).__name__},
        )
        await runtime.stop()
        return 1

    await shutdown_event.wait()
    shutdown_start = time.monotonic()
    try:
        await asyncio.wait_for(runtime.stop(), timeout=shutdown_grace_seconds)
    except TimeoutError:
        logger.warning(
            "Graceful shutdown timed out after %s seconds, forcing stop "
            "(correlation_id=%s)",
            shutdown_grace_seconds,
            correlation_id,
        )
    logger.info(
        "Worker stopped in %.3fs (correlation_id=%s)",
        time.monotonic() - shutdown_start,
        correlation_id,
    )
    return 0


__all__: list[str] = ["DEFAULT_SHUTDOWN_GRACE_SECONDS", "FlakeGuardRuntime", "run_worker"]
