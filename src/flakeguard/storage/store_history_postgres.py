# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""PostgreSQL-based test history store.

asyncpg implementation of ProtocolTestHistoryStore. Every query filters on
``org_id``; occurrence inserts join against the tenant's test cases so a
foreign test id can never be written.

Table Schema:
    CREATE TABLE IF NOT EXISTS fg_test_cases (
        id UUID PRIMARY KEY,
        org_id TEXT NOT NULL,
        repository TEXT NOT NULL,
        suite TEXT NOT NULL,
        class_name TEXT NOT NULL,
        name TEXT NOT NULL,
        file TEXT,
        owner_team TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        UNIQUE (org_id, repository, suite, class_name, name)
    );
    CREATE TABLE IF NOT EXISTS fg_occurrences (
        ...,
        UNIQUE (test_id, run_id, attempt)
    );

Security Note:
    - DSN contains credentials - never log the raw value
    - Parameterized queries only
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from uuid import UUID, uuid4

import asyncpg

from flakeguard.enums import (
    EnumFlakePattern,
    EnumFlakeRecommendation,
    EnumInfraTransportType,
    EnumQuarantineState,
    EnumSeverity,
    EnumTestStatus,
)
from flakeguard.errors import (
    InfraConnectionError,
    InvariantViolationError,
    ModelInfraErrorContext,
    RuntimeHostError,
)
from flakeguard.models import (
    ModelFlakeFeatures,
    ModelFlakeScore,
    ModelOccurrence,
    ModelPostgresStoreConfig,
    ModelQuarantineDecision,
    ModelTestCaseKey,
    ModelTestCaseRecord,
)
from flakeguard.utils import db_operation_error_context, require_tenant

logger = logging.getLogger(__name__)

_SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS fg_test_cases (
        id UUID PRIMARY KEY,
        org_id TEXT NOT NULL,
        repository TEXT NOT NULL,
        suite TEXT NOT NULL,
        class_name TEXT NOT NULL,
        name TEXT NOT NULL,
        file TEXT,
        owner_team TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        UNIQUE (org_id, repository, suite, class_name, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fg_occurrences (
        id UUID PRIMARY KEY,
        org_id TEXT NOT NULL,
        test_id UUID NOT NULL REFERENCES fg_test_cases(id),
        run_id BIGINT NOT NULL,
        attempt INTEGER NOT NULL DEFAULT 1,
        status TEXT NOT NULL,
        duration_ms BIGINT NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL,
        branch TEXT,
        commit_sha TEXT,
        failure_message TEXT,
        failure_signature TEXT,
        stack_trace TEXT,
        UNIQUE (test_id, run_id, attempt)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_fg_occurrences_test_created
    ON fg_occurrences (test_id, created_at DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_fg_occurrences_signature
    ON fg_occurrences (org_id, failure_signature)
    WHERE failure_signature IS NOT NULL
    """,
    """
    CREATE TABLE IF NOT EXISTS fg_flake_scores (
        test_id UUID PRIMARY KEY REFERENCES fg_test_cases(id),
        org_id TEXT NOT NULL,
        score DOUBLE PRECISION,
        confidence DOUBLE PRECISION NOT NULL,
        features JSONB NOT NULL,
        pattern TEXT NOT NULL,
        severity TEXT NOT NULL,
        recommendation TEXT NOT NULL,
        recommendation_text TEXT NOT NULL,
        insufficient_data BOOLEAN NOT NULL,
        reason TEXT NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fg_quarantine_decisions (
        id UUID PRIMARY KEY,
        org_id TEXT NOT NULL,
        test_id UUID NOT NULL REFERENCES fg_test_cases(id),
        state TEXT NOT NULL,
        rationale TEXT NOT NULL,
        actor TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL,
        until TIMESTAMPTZ
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_fg_quarantine_test
    ON fg_quarantine_decisions (org_id, test_id, created_at DESC)
    """,
)

_UPSERT_TEST_CASE_SQL = """
    INSERT INTO fg_test_cases
        (id, org_id, repository, suite, class_name, name, file, owner_team, created_at)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
    ON CONFLICT (org_id, repository, suite, class_name, name) DO UPDATE SET
        file = COALESCE(EXCLUDED.file, fg_test_cases.file),
        owner_team = COALESCE(EXCLUDED.owner_team, fg_test_cases.owner_team)
    RETURNING id, file, owner_team, created_at
"""

_INSERT_OCCURRENCES_SQL = """
    INSERT INTO fg_occurrences
        (id, org_id, test_id, run_id, attempt, status, duration_ms, created_at,
         branch, commit_sha, failure_message, failure_signature, stack_trace)
    SELECT u.id, $1, u.test_id, u.run_id, u.attempt, u.status, u.duration_ms,
           u.created_at, u.branch, u.commit_sha, u.failure_message,
           u.failure_signature, u.stack_trace
    FROM unnest(
        $2::uuid[], $3::uuid[], $4::bigint[], $5::int[], $6::text[],
        $7::bigint[], $8::timestamptz[], $9::text[], $10::text[],
        $11::text[], $12::text[], $13::text[]
    ) AS u(id, test_id, run_id, attempt, status, duration_ms, created_at,
           branch, commit_sha, failure_message, failure_signature, stack_trace)
    JOIN fg_test_cases t ON t.id = u.test_id AND t.org_id = $1
    ON CONFLICT (test_id, run_id, attempt) DO NOTHING
"""

_HISTORY_SQL = """
    SELECT o.id, o.test_id, o.run_id, o.attempt, o.status, o.duration_ms,
           o.created_at, o.branch, o.commit_sha, o.failure_message,
           o.failure_signature, o.stack_trace
    FROM fg_occurrences o
    WHERE o.org_id = $1 AND o.test_id = $2
      AND ($3::timestamptz IS NULL OR o.created_at >= $3)
    ORDER BY o.created_at DESC, o.run_id DESC, o.attempt DESC
    LIMIT $4
"""

_SAVE_SCORE_SQL = """
    INSERT INTO fg_flake_scores
        (test_id, org_id, score, confidence, features, pattern, severity,
         recommendation, recommendation_text, insufficient_data, reason, last_updated)
    SELECT $1, $2, $3, $4, $5::jsonb, $6, $7, $8, $9, $10, $11, $12
    WHERE EXISTS (SELECT 1 FROM fg_test_cases WHERE id = $1 AND org_id = $2)
    ON CONFLICT (test_id) DO UPDATE SET
        score = EXCLUDED.score,
        confidence = EXCLUDED.confidence,
        features = EXCLUDED.features,
        pattern = EXCLUDED.pattern,
        severity = EXCLUDED.severity,
        recommendation = EXCLUDED.recommendation,
        recommendation_text = EXCLUDED.recommendation_text,
        insufficient_data = EXCLUDED.insufficient_data,
        reason = EXCLUDED.reason,
        last_updated = EXCLUDED.last_updated
"""

_HISTORY_LIMIT_ALL: int = 2**31 - 1
_TARGET_NAME = "postgres_test_history_store"


class StoreTestHistoryPostgres:
    """asyncpg-backed ProtocolTestHistoryStore.

    Example:
        >>> store = StoreTestHistoryPostgres(ModelPostgresStoreConfig(dsn=dsn))
        >>> await store.initialize()
        >>> try:
        ...     record = await store.upsert_test_case(key)
        ... finally:
        ...     await store.shutdown()
    """

    def __init__(self, config: ModelPostgresStoreConfig) -> None:
        self._config = config
        self._pool: asyncpg.Pool | None = None
        self._initialized: bool = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create the pool and ensure the schema exists.

        Raises:
            InfraConnectionError: If the database cannot be reached.
            RuntimeHostError: If pool creation or schema setup fails.
        """
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
            logger.info(
                "StoreTestHistoryPostgres initialized",
                extra={
                    "pool_min_size": self._config.pool_min_size,
                    "pool_max_size": self._config.pool_max_size,
                },
            )
        except asyncpg.InvalidPasswordError as e:
            raise InfraConnectionError(
                "Database authentication failed - check credentials",
                context=context,
            ) from e
        except OSError as e:
            raise InfraConnectionError(
                "Failed to connect to database - check host and port",
                context=context,
            ) from e
        except asyncpg.PostgresError as e:
            raise RuntimeHostError(
                f"Failed to initialize test history store: {type(e).__name__}",
                context=context,
            ) from e

    async def shutdown(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        self._initialized = False
        logger.info("StoreTestHistoryPostgres shutdown complete")

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

    async def upsert_test_case(
        self,
        key: ModelTestCaseKey,
        file: str | None = None,
        owner_team: str | None = None,
    ) -> ModelTestCaseRecord:
        require_tenant(key.org_id, "upsert_test_case")
        pool = self._require_pool("upsert_test_case")
        async with db_operation_error_context(
            operation="upsert_test_case",
            target_name="fg_test_cases",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    _UPSERT_TEST_CASE_SQL,
                    uuid4(),
                    key.org_id,
                    key.repository,
                    key.suite,
                    key.class_name,
                    key.name,
                    file,
                    owner_team,
                    datetime.now(UTC),
                )
        return ModelTestCaseRecord(
            id=row["id"],
            key=key,
            file=row["file"],
            owner_team=row["owner_team"],
            created_at=row["created_at"],
        )

    async def insert_occurrences(
        self,
        org_id: str,
        occurrences: Sequence[ModelOccurrence],
    ) -> int:
        require_tenant(org_id, "insert_occurrences")
        if not occurrences:
            return 0
        pool = self._require_pool("insert_occurrences")
        async with db_operation_error_context(
            operation="insert_occurrences",
            target_name="fg_occurrences",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                result = await conn.execute(
                    _INSERT_OCCURRENCES_SQL,
                    org_id,
                    [o.id for o in occurrences],
                    [o.test_id for o in occurrences],
                    [o.run_id for o in occurrences],
                    [o.attempt for o in occurrences],
                    [o.status.value for o in occurrences],
                    [o.duration_ms for o in occurrences],
                    [o.created_at for o in occurrences],
                    [o.branch for o in occurrences],
                    [o.commit_sha for o in occurrences],
                    [o.failure_message for o in occurrences],
                    [o.failure_signature for o in occurrences],
                    [o.stack_trace for o in occurrences],
                )
        # asyncpg returns "INSERT 0 <rows>"
        inserted = int(str(result).rsplit(" ", 1)[-1])
        if inserted < len(occurrences):
            logger.debug(
                "Duplicate occurrences ignored",
                extra={"submitted": len(occurrences), "inserted": inserted},
            )
        return inserted

    async def list_test_cases(
        self, org_id: str, repository: str
    ) -> list[ModelTestCaseRecord]:
        require_tenant(org_id, "list_test_cases")
        pool = self._require_pool("list_test_cases")
        async with db_operation_error_context(
            operation="list_test_cases",
            target_name="fg_test_cases",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id, suite, class_name, name, file, owner_team, created_at
                    FROM fg_test_cases
                    WHERE org_id = $1 AND repository = $2
                    ORDER BY suite, class_name, name
                    """,
                    org_id,
                    repository,
                )
        return [
            ModelTestCaseRecord(
                id=row["id"],
                key=ModelTestCaseKey(
                    org_id=org_id,
                    repository=repository,
                    suite=row["suite"],
                    class_name=row["class_name"],
                    name=row["name"],
                ),
                file=row["file"],
                owner_team=row["owner_team"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    async def get_history(
        self,
        org_id: str,
        test_id: UUID,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[ModelOccurrence]:
        require_tenant(org_id, "get_history")
        pool = self._require_pool("get_history")
        async with db_operation_error_context(
            operation="get_history",
            target_name="fg_occurrences",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    _HISTORY_SQL,
                    org_id,
                    test_id,
                    since,
                    limit if limit is not None else _HISTORY_LIMIT_ALL,
                )
        return [
            ModelOccurrence(
                id=row["id"],
                test_id=row["test_id"],
                run_id=row["run_id"],
                attempt=row["attempt"],
                status=EnumTestStatus(row["status"]),
                duration_ms=row["duration_ms"],
                created_at=row["created_at"],
                branch=row["branch"],
                commit_sha=row["commit_sha"],
                failure_message=row["failure_message"],
                failure_signature=row["failure_signature"],
                stack_trace=row["stack_trace"],
            )
            for row in rows
        ]

    async def save_flake_score(self, org_id: str, score: ModelFlakeScore) -> None:
        require_tenant(org_id, "save_flake_score")
        pool = self._require_pool("save_flake_score")
        async with db_operation_error_context(
            operation="save_flake_score",
            target_name="fg_flake_scores",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                result = await conn.execute(
                    _SAVE_SCORE_SQL,
                    score.test_id,
                    org_id,
                    score.score,
                    score.confidence,
                    score.features.model_dump_json(),
                    score.pattern.value,
                    score.severity.value,
                    score.recommendation.value,
                    score.recommendation_text,
                    score.insufficient_data,
                    score.reason,
                    score.last_updated,
                )
        if str(result).endswith(" 0"):
            raise InvariantViolationError(
                f"Test case {score.test_id} does not belong to the tenant",
                test_id=str(score.test_id),
            )

    async def get_flake_score(
        self, org_id: str, test_id: UUID
    ) -> ModelFlakeScore | None:
        require_tenant(org_id, "get_flake_score")
        pool = self._require_pool("get_flake_score")
        async with db_operation_error_context(
            operation="get_flake_score",
            target_name="fg_flake_scores",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    SELECT test_id, score, confidence, features::text AS features,
                           pattern, severity, recommendation, recommendation_text,
                           insufficient_data, reason, last_updated
                    FROM fg_flake_scores
                    WHERE org_id = $1 AND test_id = $2
                    """,
                    org_id,
                    test_id,
                )
        if row is None:
            return None
        return ModelFlakeScore(
            test_id=row["test_id"],
            score=row["score"],
            confidence=row["confidence"],
            features=ModelFlakeFeatures.model_validate_json(row["features"]),
            pattern=EnumFlakePattern(row["pattern"]),
            severity=EnumSeverity(row["severity"]),
            recommendation=EnumFlakeRecommendation(row["recommendation"]),
            recommendation_text=row["recommendation_text"],
            insufficient_data=row["insufficient_data"],
            reason=row["reason"],
            last_updated=row["last_updated"],
        )

    async def add_quarantine_decision(
        self, decision: ModelQuarantineDecision
    ) -> None:
        require_tenant(decision.org_id, "add_quarantine_decision")
        pool = self._require_pool("add_quarantine_decision")
        async with db_operation_error_context(
            operation="add_quarantine_decision",
            target_name="fg_quarantine_decisions",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                result = await conn.execute(
                    """
                    INSERT INTO fg_quarantine_decisions
                        (id, org_id, test_id, state, rationale, actor,
                         created_at, updated_at, until)
                    SELECT $1, $2, $3, $4, $5, $6, $7, $8, $9
                    WHERE EXISTS (
                        SELECT 1 FROM fg_test_cases WHERE id = $3 AND org_id = $2
                    )
                    """,
                    decision.id,
                    decision.org_id,
                    decision.test_id,
                    decision.state.value,
                    decision.rationale,
                    decision.actor,
                    decision.created_at,
                    decision.updated_at,
                    decision.until,
                )
        if str(result).endswith(" 0"):
            raise InvariantViolationError(
                f"Test case {decision.test_id} does not belong to the tenant",
                test_id=str(decision.test_id),
            )

    async def update_quarantine_decision(
        self, decision: ModelQuarantineDecision
    ) -> None:
        require_tenant(decision.org_id, "update_quarantine_decision")
        pool = self._require_pool("update_quarantine_decision")
        async with db_operation_error_context(
            operation="update_quarantine_decision",
            target_name="fg_quarantine_decisions",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                result = await conn.execute(
                    """
                    UPDATE fg_quarantine_decisions
                    SET state = $3, rationale = $4, actor = $5,
                        updated_at = $6, until = $7
                    WHERE id = $1 AND org_id = $2
                    """,
                    decision.id,
                    decision.org_id,
                    decision.state.value,
                    decision.rationale,
                    decision.actor,
                    decision.updated_at,
                    decision.until,
                )
        if str(result).endswith(" 0"):
            raise InvariantViolationError(
                f"Quarantine decision {decision.id} does not exist for tenant"
            )

    async def list_quarantine_decisions(
        self,
        org_id: str,
        test_id: UUID | None = None,
    ) -> list[ModelQuarantineDecision]:
        require_tenant(org_id, "list_quarantine_decisions")
        pool = self._require_pool("list_quarantine_decisions")
        async with db_operation_error_context(
            operation="list_quarantine_decisions",
            target_name="fg_quarantine_decisions",
            timeout_seconds=self._config.command_timeout,
        ):
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id, org_id, test_id, state, rationale, actor,
                           created_at, updated_at, until
                    FROM fg_quarantine_decisions
                    WHERE org_id = $1 AND ($2::uuid IS NULL OR test_id = $2)
                    ORDER BY created_at DESC
                    """,
                    org_id,
                    test_id,
                )
        return [
            ModelQuarantineDecision(
                id=row["id"],
                org_id=row["org_id"],
                test_id=row["test_id"],
                state=EnumQuarantineState(row["state"]),
                rationale=row["rationale"],
                actor=row["actor"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                until=row["until"],
            )
            for row in rows
        ]


__all__: list[str] = ["StoreTestHistoryPostgres"]
