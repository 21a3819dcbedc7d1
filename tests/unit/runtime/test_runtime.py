# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for runtime configuration, logging setup and assembly."""

from __future__ import annotations

import asyncio
import io
import zipfile
from collections.abc import AsyncIterator
from uuid import UUID

import pytest

from flakeguard.enums import EnumJobKind, EnumJobStatus
from flakeguard.errors import ProtocolConfigurationError
from flakeguard.jobs import InMemoryDecisionSink, InMemoryJobStore, StoreJobPostgres, job_id_for
from flakeguard.models import ModelArtifact, ModelJobSubmission, ModelRepositoryRef
from flakeguard.runtime import FlakeGuardRuntime, ModelRuntimeConfig, resolve_log_level
from flakeguard.storage import InMemoryTestHistoryStore, StoreTestHistoryPostgres

REPORT = b"""<?xml version="1.0"?>
<testsuite name="api" tests="2" failures="1">
  <testcase classname="api.TestOrders" name="test_create"/>
  <testcase classname="api.TestOrders" name="test_cancel">
    <failure message="AssertionError: expected 204"/>
  </testcase>
</testsuite>
"""


class StubArtifactSource:
    def __init__(self) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("junit/api.xml", REPORT)
        self.payload = buffer.getvalue()

    async def list_artifacts(
        self,
        repository: ModelRepositoryRef,
        run_id: int,
        correlation_id: UUID | None = None,
    ) -> list[ModelArtifact]:
        return [ModelArtifact(id=1, name="junit-results", size_bytes=len(self.payload))]

    async def stream_artifact(
        self,
        repository: ModelRepositoryRef,
        artifact_id: int,
        correlation_id: UUID | None = None,
    ) -> AsyncIterator[bytes]:
        yield self.payload


class NoPolicySource:
    async def fetch_policy_file(
        self,
        repository: ModelRepositoryRef,
        ref: str = "HEAD",
        correlation_id: UUID | None = None,
    ) -> str | None:
        return None


# =============================================================================
# Configuration
# =============================================================================


class TestModelRuntimeConfig:
    def test_defaults_from_empty_environment(self) -> None:
        config = ModelRuntimeConfig.from_env({})

        assert config == ModelRuntimeConfig()
        assert config.database_dsn is None
        assert config.worker_concurrency == 3
        assert config.github_api_url == "https://api.github.com"

    def test_reads_prefixed_variables(self) -> None:
        config = ModelRuntimeConfig.from_env(
            {
                "FLAKEGUARD_DATABASE_DSN": "postgresql://u:p@db/fg",
                "FLAKEGUARD_WORKER_CONCURRENCY": "8",
                "FLAKEGUARD_JOB_TIMEOUT_SECONDS": "90.5",
                "FLAKEGUARD_GITHUB_TOKEN": "   ",
            }
        )

        assert config.database_dsn == "postgresql://u:p@db/fg"
        assert config.worker_concurrency == 8
        assert config.job_timeout_seconds == 90.5
        assert config.github_token is None

    def test_secrets_are_not_in_repr(self) -> None:
        config = ModelRuntimeConfig(
            database_dsn="postgresql://u:hunter2@db/fg", github_token="ghs_secret"
        )

        assert "hunter2" not in repr(config)
        assert "ghs_secret" not in repr(config)

    def test_invalid_value_names_variable(self) -> None:
        with pytest.raises(ProtocolConfigurationError) as exc_info:
            ModelRuntimeConfig.from_env({"FLAKEGUARD_WORKER_CONCURRENCY": "lots"})

        assert "FLAKEGUARD_WORKER_CONCURRENCY" in exc_info.value.message

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FLAKEGUARD_MAX_JOB_ATTEMPTS", "5")

        assert ModelRuntimeConfig.from_env().max_job_attempts == 5


class TestResolveLogLevel:
    def test_normalizes_case(self) -> None:
        assert resolve_log_level(" debug ") == "DEBUG"

    def test_invalid_level_falls_back_with_warning(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert resolve_log_level("CHATTY") == "INFO"
        assert "Invalid FLAKEGUARD_LOG_LEVEL 'CHATTY'" in capsys.readouterr().err

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FLAKEGUARD_LOG_LEVEL", "warning")

        assert resolve_log_level() == "WARNING"


# =============================================================================
# Assembly
# =============================================================================


class TestFlakeGuardRuntime:
    def test_without_dsn_uses_inmemory_stores(self) -> None:
        runtime = FlakeGuardRuntime(ModelRuntimeConfig())

        assert isinstance(runtime.history_store, InMemoryTestHistoryStore)
        assert isinstance(runtime.job_store, InMemoryJobStore)

    def test_with_dsn_uses_postgres_stores(self) -> None:
        runtime = FlakeGuardRuntime(
            ModelRuntimeConfig(database_dsn="postgresql://u:p@localhost/fg")
        )

        assert isinstance(runtime.history_store, StoreTestHistoryPostgres)
        assert isinstance(runtime.job_store, StoreJobPostgres)

    @pytest.mark.asyncio
    async def test_stop_without_start_is_safe(self) -> None:
        runtime = FlakeGuardRuntime(ModelRuntimeConfig())

        await runtime.stop()

        assert runtime.is_started is False

    @pytest.mark.asyncio
    async def test_ingest_then_analyze_end_to_end(
        self, repository: ModelRepositoryRef
    ) -> None:
        sink = InMemoryDecisionSink()
        runtime = FlakeGuardRuntime(
            ModelRuntimeConfig(worker_concurrency=2),
            artifact_source=StubArtifactSource(),
            policy_source=NoPolicySource(),
            sink=sink,
        )
        await runtime.start()
        try:
            assert runtime.is_started
            response = await runtime.orchestrator.submit(
                ModelJobSubmission(run_id=31, repository=repository, branch="main")
            )
            await asyncio.wait_for(runtime.orchestrator.drain(), timeout=10)

            ingest = await runtime.orchestrator.get_job(response.job_id)
            analyze = await runtime.orchestrator.get_job(
                job_id_for(repository, 31, EnumJobKind.ANALYZE)
            )
        finally:
            await runtime.stop()

        assert ingest.status is EnumJobStatus.COMPLETED
        assert ingest.ingestion_result is not None
        assert ingest.ingestion_result.total_tests == 2
        assert analyze.status is EnumJobStatus.COMPLETED
        assert analyze.analysis_result is not None
        # Two runs are below the default minimum occurrence count.
        assert analyze.analysis_result.insufficient_data == 2
        assert len(sink.published) == 1
        assert runtime.metrics.registry.get_sample_value(
            "flakeguard_jobs_completed_total", {"kind": "ingest"}
        ) == 1.0
