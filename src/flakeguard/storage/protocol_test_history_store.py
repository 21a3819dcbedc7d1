# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Test History Store Protocol.

Tenant-parameterized data access for test case identities, occurrences,
flake scores and quarantine decisions. Every method takes the tenant
(``org_id``) explicitly and only ever reads or writes that tenant's rows.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from flakeguard.models import (
    ModelFlakeScore,
    ModelOccurrence,
    ModelQuarantineDecision,
    ModelTestCaseKey,
    ModelTestCaseRecord,
)


@runtime_checkable
class ProtocolTestHistoryStore(Protocol):
    """Persistence interface used by the writer, scorer and decision engine.

    Implementations:
        - InMemoryTestHistoryStore: process-local, for tests and single runs
        - StoreTestHistoryPostgres: asyncpg-backed durable store

    Invariants:
        - Test cases are upserted on their natural key and never deleted.
        - Occurrences are append-only; (test_id, run_id, attempt) is unique
          and a duplicate insert is silently ignored.
        - One flake score row per test case, overwritten on recomputation.
    """

    async def upsert_test_case(
        self,
        key: ModelTestCaseKey,
        file: str | None = None,
        owner_team: str | None = None,
    ) -> ModelTestCaseRecord:
        """Create the test case or update its file/owner metadata.

        Args:
            key: Natural key, including the tenant
            file: Source file path; an existing value is kept when None
            owner_team: Owning team; an existing value is kept when None

        Returns:
            The stored record with its stable id.
        """
        ...

    async def insert_occurrences(
        self,
        org_id: str,
        occurrences: Sequence[ModelOccurrence],
    ) -> int:
        """Append occurrences, ignoring duplicates of (test_id, run_id, attempt).

        Returns:
            Number of rows actually inserted.

        Raises:
            InvariantViolationError: If org_id is blank.
        """
        ...

    async def list_test_cases(
        self, org_id: str, repository: str
    ) -> list[ModelTestCaseRecord]:
        """All test cases of one repository."""
        ...

    async def get_history(
        self,
        org_id: str,
        test_id: UUID,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[ModelOccurrence]:
        """Occurrences of one test, most recent first."""
        ...

    async def save_flake_score(self, org_id: str, score: ModelFlakeScore) -> None:
        """Replace the stored score of ``score.test_id``."""
        ...

    async def get_flake_score(
        self, org_id: str, test_id: UUID
    ) -> ModelFlakeScore | None:
        ...

    async def add_quarantine_decision(
        self, decision: ModelQuarantineDecision
    ) -> None:
        ...

    async def update_quarantine_decision(
        self, decision: ModelQuarantineDecision
    ) -> None:
        """Persist a state transition of an existing decision."""
        ...

    async def list_quarantine_decisions(
        self,
        org_id: str,
        test_id: UUID | None = None,
    ) -> list[ModelQuarantineDecision]:
        """Decisions of one test (or the whole tenant), newest first."""
        ...


__all__: list[str] = ["ProtocolTestHistoryStore"]
