# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Occurrence Store Writer.

Turns parsed JUnit suites into persisted test case identities and one
occurrence per test case per run attempt. Test case identities are upserted
on their natural key; occurrences are append-only and never updated.

Durations are normalized to milliseconds here regardless of the report's
native unit. Occurrences are stamped with the suite's own ``timestamp`` when
the report carries one, else with the caller's run timestamp, else with the
ingestion time. Re-ingesting the same run attempt is absorbed by the
(test_id, run_id, attempt) uniqueness of the store, and the orchestrator
additionally guarantees a single active job per run.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from uuid import UUID, uuid4

from flakeguard.enums import EnumTestStatus
from flakeguard.models import (
    ModelIngestionResult,
    ModelOccurrence,
    ModelParsedTestSuite,
    ModelRepositoryRef,
    ModelTestCaseKey,
)
from flakeguard.storage.protocol_test_history_store import ProtocolTestHistoryStore
from flakeguard.utils import failure_signature, require_tenant

logger = logging.getLogger(__name__)

_STATUS_COUNTERS: dict[EnumTestStatus, str] = {
    EnumTestStatus.PASSED: "passed",
    EnumTestStatus.FAILED: "failed",
    EnumTestStatus.ERROR: "errored",
    EnumTestStatus.SKIPPED: "skipped",
}


class ServiceOccurrenceWriter:
    """Persists parsed suites as test cases and occurrences.

    Example:
        >>> writer = ServiceOccurrenceWriter(store)
        >>> result = await writer.write_suites(repo, parsed.suites, run_id=42)
        >>> result.occurrences_written
        4
    """

    def __init__(self, store: ProtocolTestHistoryStore) -> None:
        self._store = store

    async def write_suites(
        self,
        repository: ModelRepositoryRef,
        suites: Sequence[ModelParsedTestSuite],
        run_id: int,
        run_attempt: int = 1,
        branch: str | None = None,
        commit_sha: str | None = None,
        observed_at: datetime | None = None,
        correlation_id: UUID | None = None,
    ) -> ModelIngestionResult:
        """Upsert test identities and insert one occurrence per test case.

        Args:
            repository: Tenant-scoped repository coordinates
            suites: Parsed suites from one artifact
            run_id: CI workflow run id
            run_attempt: CI run attempt number
            branch: Branch the run executed on
            commit_sha: Commit the run executed against
            observed_at: Run timestamp for suites without their own (defaults
                to now)
            correlation_id: Trace id for logs

        Returns:
            Counters over distinct test identities. Repeats within the
            artifact are counted in ``duplicate_tests`` only, and
            ``occurrences_written`` also excludes an already-recorded
            (test, run, attempt).
        """
        require_tenant(repository.org_id, "write_suites")
        now = datetime.now(UTC)
        fallback_at = observed_at or now
        counters: dict[str, int] = dict.fromkeys(_STATUS_COUNTERS.values(), 0)
        duplicates = 0
        occurrences: list[ModelOccurrence] = []
        # The same identity can appear twice in one artifact (split reports);
        # keep the first execution only.
        seen: set[UUID] = set()

        for suite in suites:
            created_at = suite_timestamp(suite.timestamp, now) or fallback_at
            for case in suite.test_cases:
                key = ModelTestCaseKey(
                    org_id=repository.org_id,
                    repository=repository.full_name,
                    suite=suite.name,
                    class_name=case.class_name,
                    name=case.name,
                )
                record = await self._store.upsert_test_case(
                    key, file=case.file or suite.file
                )
                if record.id in seen:
                    duplicates += 1
                    continue
                seen.add(record.id)
                counters[_STATUS_COUNTERS[case.status]] += 1
                occurrences.append(
                    ModelOccurrence(
                        id=uuid4(),
                        test_id=record.id,
                        run_id=run_id,
                        attempt=run_attempt,
                        status=case.status,
                        duration_ms=case.duration_ms,
                        created_at=created_at,
                        branch=branch,
                        commit_sha=commit_sha,
                        failure_message=case.failure_message,
                        failure_signature=(
                            failure_signature(case.failure_message)
                            if case.status.is_failure
                            else None
                        ),
                        stack_trace=case.stack_trace,
                    )
                )

        written = await self._store.insert_occurrences(repository.org_id, occurrences)
        total = sum(counters.values())
        logger.debug(
            "Occurrences written",
            extra={
                "repository": repository.full_name,
                "run_id": run_id,
                "total_tests": total,
                "written": written,
                "duplicate_tests": duplicates,
                "correlation_id": str(correlation_id) if correlation_id else None,
            },
        )
        return ModelIngestionResult(
            total_tests=total,
            occurrences_written=written,
            duplicate_tests=duplicates,
            **counters,
        )


def suite_timestamp(raw: str | None, now: datetime) -> datetime | None:
    """Parse a JUnit suite ``timestamp`` attribute.

    Naive values are read as UTC. Values ahead of ``now`` (runner clock skew)
    are clamped to ``now``; unparseable values yield None.
    """
    if not raw or not raw.strip():
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return min(parsed, now)


__all__: list[str] = ["ServiceOccurrenceWriter", "suite_timestamp"]
