# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for InMemoryTestHistoryStore."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from flakeguard.enums import EnumFlakeRecommendation, EnumQuarantineState
from flakeguard.errors import InvariantViolationError
from flakeguard.models import (
    ModelFlakeScore,
    ModelQuarantineDecision,
    ModelTestCaseKey,
)
from flakeguard.storage import InMemoryTestHistoryStore
from tests.conftest import FIXED_NOW, build_history


def make_key(name: str = "test_login", org_id: str = "org-acme") -> ModelTestCaseKey:
    return ModelTestCaseKey(
        org_id=org_id,
        repository="acme/widgets",
        suite="auth",
        class_name="tests.test_auth",
        name=name,
    )


@pytest.fixture
def store() -> InMemoryTestHistoryStore:
    return InMemoryTestHistoryStore()


# =============================================================================
# Test case identity
# =============================================================================


class TestUpsertTestCase:
    @pytest.mark.asyncio
    async def test_same_key_returns_same_identity(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        first = await store.upsert_test_case(make_key())
        second = await store.upsert_test_case(make_key())

        assert first.id == second.id
        assert len(await store.list_test_cases("org-acme", "acme/widgets")) == 1

    @pytest.mark.asyncio
    async def test_metadata_is_updated_not_cleared(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        await store.upsert_test_case(make_key(), file="tests/test_auth.py")
        updated = await store.upsert_test_case(make_key(), owner_team="payments")
        again = await store.upsert_test_case(make_key())

        assert updated.file == "tests/test_auth.py"
        assert updated.owner_team == "payments"
        assert again.owner_team == "payments"

    @pytest.mark.asyncio
    async def test_same_key_in_other_tenant_is_distinct(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        ours = await store.upsert_test_case(make_key())
        theirs = await store.upsert_test_case(make_key(org_id="org-other"))

        assert ours.id != theirs.id
        listed = await store.list_test_cases("org-other", "acme/widgets")
        assert [r.id for r in listed] == [theirs.id]

    @pytest.mark.asyncio
    async def test_blank_tenant_rejected(self, store: InMemoryTestHistoryStore) -> None:
        with pytest.raises(InvariantViolationError):
            await store.list_test_cases("  ", "acme/widgets")


# =============================================================================
# Occurrences
# =============================================================================


class TestOccurrences:
    @pytest.mark.asyncio
    async def test_duplicate_run_attempt_is_ignored(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        record = await store.upsert_test_case(make_key())
        history = build_history("PFP", test_id=record.id)

        assert await store.insert_occurrences("org-acme", history) == 3
        replay = [occ.model_copy(update={"id": uuid4()}) for occ in history]
        assert await store.insert_occurrences("org-acme", replay) == 0
        assert len(await store.get_history("org-acme", record.id)) == 3

    @pytest.mark.asyncio
    async def test_new_attempt_of_same_run_is_recorded(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        record = await store.upsert_test_case(make_key())
        [first] = build_history("F", test_id=record.id)
        retry = first.model_copy(update={"id": uuid4(), "attempt": 2})

        assert await store.insert_occurrences("org-acme", [first, retry]) == 2

    @pytest.mark.asyncio
    async def test_foreign_test_id_rejected(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        theirs = await store.upsert_test_case(make_key(org_id="org-other"))

        with pytest.raises(InvariantViolationError):
            await store.insert_occurrences(
                "org-acme", build_history("P", test_id=theirs.id)
            )

    @pytest.mark.asyncio
    async def test_history_is_newest_first_with_since_and_limit(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        record = await store.upsert_test_case(make_key())
        history = build_history("PPFPF", test_id=record.id)
        await store.insert_occurrences("org-acme", history)

        newest = await store.get_history("org-acme", record.id)
        assert [o.run_id for o in newest] == [1004, 1003, 1002, 1001, 1000]

        limited = await store.get_history("org-acme", record.id, limit=2)
        assert [o.run_id for o in limited] == [1004, 1003]

        since = await store.get_history(
            "org-acme", record.id, since=FIXED_NOW - timedelta(hours=2)
        )
        assert [o.run_id for o in since] == [1004, 1003]

    @pytest.mark.asyncio
    async def test_history_of_other_tenant_is_empty(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        record = await store.upsert_test_case(make_key())
        await store.insert_occurrences("org-acme", build_history("PF", test_id=record.id))

        assert await store.get_history("org-other", record.id) == []


# =============================================================================
# Scores and quarantine decisions
# =============================================================================


class TestScoresAndDecisions:
    @pytest.mark.asyncio
    async def test_score_replaces_previous(self, store: InMemoryTestHistoryStore) -> None:
        record = await store.upsert_test_case(make_key())
        await store.save_flake_score(
            "org-acme", ModelFlakeScore(test_id=record.id, score=0.2, last_updated=FIXED_NOW)
        )
        await store.save_flake_score(
            "org-acme",
            ModelFlakeScore(
                test_id=record.id,
                score=0.8,
                recommendation=EnumFlakeRecommendation.QUARANTINE,
                last_updated=FIXED_NOW,
            ),
        )

        score = await store.get_flake_score("org-acme", record.id)
        assert score is not None
        assert score.score == 0.8
        assert await store.get_flake_score("org-other", record.id) is None

    @pytest.mark.asyncio
    async def test_decisions_listed_newest_first(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        record = await store.upsert_test_case(make_key())
        older = ModelQuarantineDecision(
            id=uuid4(),
            org_id="org-acme",
            test_id=record.id,
            state=EnumQuarantineState.REVERTED,
            rationale="score 0.7",
            actor="flakeguard",
            created_at=FIXED_NOW - timedelta(days=2),
            updated_at=FIXED_NOW - timedelta(days=1),
        )
        newer = older.model_copy(
            update={
                "id": uuid4(),
                "state": EnumQuarantineState.ACTIVE,
                "created_at": FIXED_NOW,
                "updated_at": FIXED_NOW,
            }
        )
        await store.add_quarantine_decision(older)
        await store.add_quarantine_decision(newer)

        listed = await store.list_quarantine_decisions("org-acme", record.id)
        assert [d.id for d in listed] == [newer.id, older.id]
        assert await store.list_quarantine_decisions("org-other") == []

    @pytest.mark.asyncio
    async def test_update_of_unknown_decision_rejected(
        self, store: InMemoryTestHistoryStore
    ) -> None:
        record = await store.upsert_test_case(make_key())
        decision = ModelQuarantineDecision(
            id=uuid4(),
            org_id="org-acme",
            test_id=record.id,
            state=EnumQuarantineState.ACTIVE,
            rationale="score 0.9",
            actor="flakeguard",
            created_at=FIXED_NOW,
            updated_at=FIXED_NOW,
        )

        with pytest.raises(InvariantViolationError):
            await store.update_quarantine_decision(decision)
