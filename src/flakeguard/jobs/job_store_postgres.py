# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""PostgreSQL job store.

Job snapshots are stored as JSONB next to the columns needed for lookups.
``create_if_absent`` locks the existing row (if any) inside a transaction so
two submitters racing on the same run cannot both create a job.

Table Schema:
    CREATE TABLE IF NOT EXISTS fg_jobs (
        id UUID PRIMARY KEY,
        org_id TEXT NOT NULL,
        repository TEXT NOT NULL,
        run_id BIGINT NOT NULL,
        kind TEXT NOT NULL,
        status TEXT NOT NULL,
        payload JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    );
"""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

import asyncpg

from flakeguard.enums import EnumInfraTransportType, EnumJobStatus
from flakeguard.errors import (
    InfraConnectionError,
    JobNotFoundError,
    ModelInfraErrorContext,
    RuntimeHostError,
)
from flakeguard.models import ModelJob, ModelPostgresStoreConfig
from flakeguard.utils import db_operation_error_context

logger = logging.getLogger(__name__)

_TARGET_NAME = "postgres_job_store"

_SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS fg_jobs (
        id UUID PRIMARY KEY,
        org_id TEXT NOT NULL,
        repository TEXT NOT NULL,
        run_id BIGINT NOT NULL,
        kind TEXT NOT NULL,
        status TEXT NOT NULL,
        payload JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_fg_jobs_status_created
    ON fg_jobs (status, created_at)
    """,
)

_UPSERT_SQL = """
    INSERT INTO fg_jobs
        (id, org_id, repository, run_id, kind, status, payload, created_at, updated_at)
    VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb, $8, $9)
    ON CONFLICT (id) DO UPDATE SET
        status = EXCLUDED.status,
        payload = EXCLUDED.payload,
        created_at = EXCLUDED.created_at,
        updated_at = EXCLUDED.updated_at
"""


class StoreJobPostgres:
    """asyncpg-backed ProtocolJobStore."""

    def __init__(self, config: ModelPostgresStoreConfig) -> None:
        self._config = config
        self._pool: asyncpg.Pool | None = None
        self._initialized: bool = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        if self._initialized:
            return
        context = ModelInfraErrorContext(
            transport_type=EnumInfraTransportType.DATABASE,
            operation="initialize",
            target_name=_TARGET_NAME,
            correlation_id=uuid4(),
        )
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._config.dsn,
                min_size=self._config.pool_min_size,
                max_size=self._config.pool_max_size,
                command_timeout=self._config.command_timeout,
            )
            async with self._pool.acquire() as conn:
                for statement in _SCHEMA_STATEMENTS:
                    await conn.execute(statement)
            self._initialized = True
            logger.info("StoreJobPostgres initialized")
        except OSError as e:
            raise InfraConnectionError(
                "Failed to connect to database - check host and port",
                context=context,
            ) from e
        except asyncpg.PostgresError as e:
            raise RuntimeHostError(
                f"Failed to initialize job store: {type(e).__name__}",
                context=context,
            ) from e

    async def shutdown(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        self._initialized = False
        logger.info("StoreJobPostgres shutdown complete")

    def _require_pool(self, operation: str) -> asyncpg.Pool:
        if not self._initialized or self._pool is None:
            raise RuntimeHostError(
                "Store not initialized - call initialize() first",
                context=ModelInfraErrorContext(
                    transport_type=EnumInfraTransportType.DATABASE,
                    operation=operation,
                    target_name=_TARGET_NAME,
                ),
            )
        return self._pool

    @staticmethod
    def _params(job: ModelJob) -> tuple[object, ...]:
        return (
            job.id,
            job.repository.org_id,
            job.repository.full_name,
            job.run_id,
            job.kind.value,
            job.status.value,
            job.model_dump_json(),
            job.created_at,
            job.updated_at,
        )

    async def create_if_absent(self, job: ModelJob) -> tuple[ModelJob, bool]:
        pool = self._require_pool("create_job")
        async with db_operation_error_context(
            operation="create_job",
            target_name="fg_jobs",
            correlation_id=job.correlation_id,
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        "SELECT payload::text AS payload FROM fg_jobs "
                        "WHERE id = $1 FOR UPDATE",
                        job.id,
                    )
                    if row is not None:
                        existing = ModelJob.model_validate_json(row["payload"])
                        if existing.status.is_active:
                            return existing, False
                    await conn.execute(_UPSERT_SQL, *self._params(job))
        return job, True

    async def get(self, job_id: UUID) -> ModelJob | None:
        pool = self._require_pool("get_job")
        async with db_operation_error_context(
            operation="get_job",
            target_name="fg_jobs",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT payload::text AS payload FROM fg_jobs WHERE id = $1",
                    job_id,
                )
        if row is None:
            return None
        return ModelJob.model_validate_json(row["payload"])

    async def save(self, job: ModelJob) -> None:
        pool = self._require_pool("save_job")
        async with db_operation_error_context(
            operation="save_job",
            target_name="fg_jobs",
            correlation_id=job.correlation_id,
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                result = await conn.execute(
                    "UPDATE fg_jobs SET status = $2, payload = $3::jsonb, "
                    "updated_at = $4 WHERE id = $1",
                    job.id,
                    job.status.value,
                    job.model_dump_json(),
                    job.updated_at,
                )
        if str(result).endswith(" 0"):
            raise JobNotFoundError(job.id)

    async def list_by_status(self, status: EnumJobStatus) -> list[ModelJob]:
        pool = self._require_pool("list_jobs")
        async with db_operation_error_context(
            operation="list_jobs",
            target_name="fg_jobs",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT payload::text AS payload FROM fg_jobs "
                    "WHERE status = $1 ORDER BY created_at",
                    status.value,
                )
        return [ModelJob.model_validate_json(row["payload"]) for row in rows]


__all__: list[str] = ["StoreJobPostgres"]
