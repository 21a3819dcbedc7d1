# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""In-memory test history store.

Process-local implementation of ProtocolTestHistoryStore, used in tests and
for single-process runs. An asyncio.Lock serializes writers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime
from uuid import UUID, uuid4

from flakeguard.errors import InvariantViolationError
from flakeguard.models import (
    ModelFlakeScore,
    ModelOccurrence,
    ModelQuarantineDecision,
    ModelTestCaseKey,
    ModelTestCaseRecord,
)
from flakeguard.utils import require_tenant


class InMemoryTestHistoryStore:
    """Dictionary-backed ProtocolTestHistoryStore."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._cases: dict[UUID, ModelTestCaseRecord] = {}
        self._case_ids: dict[ModelTestCaseKey, UUID] = {}
        self._occurrences: dict[UUID, list[ModelOccurrence]] = {}
        self._occurrence_keys: set[tuple[UUID, int, int]] = set()
        self._scores: dict[UUID, ModelFlakeScore] = {}
        self._decisions: dict[UUID, ModelQuarantineDecision] = {}

    async def upsert_test_case(
        self,
        key: ModelTestCaseKey,
        file: str | None = None,
        owner_team: str | None = None,
    ) -> ModelTestCaseRecord:
        require_tenant(key.org_id, "upsert_test_case")
        async with self._lock:
            existing_id = self._case_ids.get(key)
            if existing_id is None:
                record = ModelTestCaseRecord(
                    id=uuid4(),
                    key=key,
                    file=file,
                    owner_team=owner_team,
                    created_at=datetime.now(UTC),
                )
                self._case_ids[key] = record.id
                self._cases[record.id] = record
                return record

            record = self._cases[existing_id]
            if (file is not None and file != record.file) or (
                owner_team is not None and owner_team != record.owner_team
            ):
                record = record.model_copy(
                    update={
                        "file": file if file is not None else record.file,
                        "owner_team": owner_team if owner_team is not None else record.owner_team,
                    }
                )
                self._cases[existing_id] = record
            return record

    async def insert_occurrences(
        self,
        org_id: str,
        occurrences: Sequence[ModelOccurrence],
    ) -> int:
        require_tenant(org_id, "insert_occurrences")
        inserted = 0
        async with self._lock:
            for occurrence in occurrences:
                self._check_owner(org_id, occurrence.test_id)
                dedupe_key = (occurrence.test_id, occurrence.run_id, occurrence.attempt)
                if dedupe_key in self._occurrence_keys:
                    continue
                self._occurrence_keys.add(dedupe_key)
                self._occurrences.setdefault(occurrence.test_id, []).append(occurrence)
                inserted += 1
        return inserted

    async def list_test_cases(
        self, org_id: str, repository: str
    ) -> list[ModelTestCaseRecord]:
        require_tenant(org_id, "list_test_cases")
        return [
            record
            for record in self._cases.values()
            if record.key.org_id == org_id and record.key.repository == repository
        ]

    async def get_history(
        self,
        org_id: str,
        test_id: UUID,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[ModelOccurrence]:
        require_tenant(org_id, "get_history")
        if not self._owned_by(org_id, test_id):
            return []
        history = [
            occ
            for occ in self._occurrences.get(test_id, [])
            if since is None or occ.created_at >= since
        ]
        history.sort(key=lambda o: (o.created_at, o.run_id, o.attempt), reverse=True)
        return history[:limit] if limit is not None else history

    async def save_flake_score(self, org_id: str, score: ModelFlakeScore) -> None:
        require_tenant(org_id, "save_flake_score")
        self._check_owner(org_id, score.test_id)
        self._scores[score.test_id] = score

    async def get_flake_score(
        self, org_id: str, test_id: UUID
    ) -> ModelFlakeScore | None:
        require_tenant(org_id, "get_flake_score")
        if not self._owned_by(org_id, test_id):
            return None
        return self._scores.get(test_id)

    async def add_quarantine_decision(
        self, decision: ModelQuarantineDecision
    ) -> None:
        require_tenant(decision.org_id, "add_quarantine_decision")
        self._check_owner(decision.org_id, decision.test_id)
        self._decisions[decision.id] = decision

    async def update_quarantine_decision(
        self, decision: ModelQuarantineDecision
    ) -> None:
        require_tenant(decision.org_id, "update_quarantine_decision")
        current = self._decisions.get(decision.id)
        if current is None or current.org_id != decision.org_id:
            raise InvariantViolationError(
                f"Quarantine decision {decision.id} does not exist for tenant"
            )
        self._decisions[decision.id] = decision

    async def list_quarantine_decisions(
        self,
        org_id: str,
        test_id: UUID | None = None,
    ) -> list[ModelQuarantineDecision]:
        require_tenant(org_id, "list_quarantine_decisions")
        decisions = [
            d
            for d in self._decisions.values()
            if d.org_id == org_id and (test_id is None or d.test_id == test_id)
        ]
        decisions.sort(key=lambda d: d.created_at, reverse=True)
        return decisions

    def _owned_by(self, org_id: str, test_id: UUID) -> bool:
        record = self._cases.get(test_id)
        return record is not None and record.key.org_id == org_id

    def _check_owner(self, org_id: str, test_id: UUID) -> None:
        if not self._owned_by(org_id, test_id):
            raise InvariantViolationError(
                f"Test case {test_id} does not belong to the tenant",
                test_id=str(test_id),
            )


__all__: list[str] = ["InMemoryTestHistoryStore"]
