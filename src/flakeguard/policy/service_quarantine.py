# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Quarantine decision service.

Owns the "at most one ACTIVE quarantine per test" invariant: the store only
records decisions, so every transition goes through this service under a
single lock. An ACTIVE decision past its ``until`` is treated as expired and
transitioned to EXPIRED before a new quarantine is recorded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from uuid import UUID, uuid4

from flakeguard.enums import EnumPolicyAction, EnumQuarantineState
from flakeguard.errors import InvariantViolationError, QuarantineConflictError
from flakeguard.models import (
    ModelFlakeScore,
    ModelPolicyConfig,
    ModelPolicyDecision,
    ModelQuarantineDecision,
    ModelQuarantineProposal,
)
from flakeguard.policy.policy_engine import suggested_quarantine_until
from flakeguard.storage import ProtocolTestHistoryStore
from flakeguard.utils import require_tenant

logger = logging.getLogger(__name__)

SYSTEM_ACTOR: str = "flakeguard"


class ServiceQuarantine:
    """Records quarantine transitions: ACTIVE -> EXPIRED | REVERTED."""

    def __init__(
        self,
        store: ProtocolTestHistoryStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = asyncio.Lock()

    async def active_decision(
        self, org_id: str, test_id: UUID, now: datetime | None = None
    ) -> ModelQuarantineDecision | None:
        now = now or self._clock()
        decisions = await self._store.list_quarantine_decisions(org_id, test_id)
        return next((d for d in decisions if d.is_active_at(now)), None)

    async def active_test_ids(
        self, org_id: str, now: datetime | None = None
    ) -> set[UUID]:
        now = now or self._clock()
        decisions = await self._store.list_quarantine_decisions(org_id)
        return {d.test_id for d in decisions if d.is_active_at(now)}

    async def quarantine(
        self,
        org_id: str,
        test_id: UUID,
        rationale: str,
        actor: str,
        until: datetime | None = None,
    ) -> ModelQuarantineDecision:
        """Record a new ACTIVE quarantine.

        Raises:
            QuarantineConflictError: The test is already quarantined.
            InvariantViolationError: ``until`` is not in the future.
        """
        require_tenant(org_id, "quarantine")
        async with self._lock:
            now = self._clock()
            if until is not None and until <= now:
                raise InvariantViolationError(
                    "Quarantine expiry must be in the future",
                    test_id=str(test_id),
                )
            decisions = await self._store.list_quarantine_decisions(org_id, test_id)
            for existing in decisions:
                if existing.state is not EnumQuarantineState.ACTIVE:
                    continue
                if existing.is_active_at(now):
                    raise QuarantineConflictError(test_id)
                await self._store.update_quarantine_decision(
                    existing.model_copy(
                        update={"state": EnumQuarantineState.EXPIRED, "updated_at": now}
                    )
                )

            decision = ModelQuarantineDecision(
                id=uuid4(),
                org_id=org_id,
                test_id=test_id,
                state=EnumQuarantineState.ACTIVE,
                rationale=rationale,
                actor=actor,
                created_at=now,
                updated_at=now,
                until=until,
            )
            await self._store.add_quarantine_decision(decision)
        logger.info(
            "Test quarantined",
            extra={
                "test_id": str(test_id),
                "actor": actor,
                "until": until.isoformat() if until else None,
            },
        )
        return decision

    async def revert(
        self,
        org_id: str,
        test_id: UUID,
        actor: str,
        rationale: str = "Quarantine reverted",
    ) -> ModelQuarantineDecision | None:
        """Transition the active quarantine to REVERTED; None when not quarantined."""
        require_tenant(org_id, "revert_quarantine")
        async with self._lock:
            now = self._clock()
            active = await self.active_decision(org_id, test_id, now)
            if active is None:
                return None
            reverted = active.model_copy(
                update={
                    "state": EnumQuarantineState.REVERTED,
                    "rationale": rationale,
                    "actor": actor,
                    "updated_at": now,
                }
            )
            await self._store.update_quarantine_decision(reverted)
        logger.info(
            "Quarantine reverted", extra={"test_id": str(test_id), "actor": actor}
        )
        return reverted

    async def expire_due(
        self, org_id: str, now: datetime | None = None
    ) -> list[ModelQuarantineDecision]:
        """Transition ACTIVE decisions whose ``until`` has passed to EXPIRED."""
        require_tenant(org_id, "expire_quarantines")
        async with self._lock:
            now = now or self._clock()
            expired: list[ModelQuarantineDecision] = []
            for decision in await self._store.list_quarantine_decisions(org_id):
                due = (
                    decision.state is EnumQuarantineState.ACTIVE
                    and decision.until is not None
                    and decision.until <= now
                )
                if not due:
                    continue
                updated = decision.model_copy(
                    update={"state": EnumQuarantineState.EXPIRED, "updated_at": now}
                )
                await self._store.update_quarantine_decision(updated)
                expired.append(updated)
        if expired:
            logger.info("Quarantines expired", extra={"count": len(expired)})
        return expired

    def propose_candidates(
        self,
        scores: Iterable[ModelFlakeScore],
        policy: ModelPolicyConfig,
        already_quarantined: Iterable[UUID] = (),
        now: datetime | None = None,
    ) -> list[ModelQuarantineProposal]:
        """Propose quarantine for tests at or above the quarantine threshold.

        Highest scores first; tests already quarantined are left out.
        """
        now = now or self._clock()
        excluded = set(already_quarantined)
        proposals = [
            ModelQuarantineProposal(
                test_id=s.test_id,
                score=s.score,
                rationale=(
                    f"Flakiness score {s.score:.3f} at or above quarantine "
                    f"threshold {policy.flaky_threshold}"
                ),
                suggested_until=suggested_quarantine_until(s.score, policy, now),
            )
            for s in scores
            if s.score is not None
            and s.score >= policy.flaky_threshold
            and s.test_id not in excluded
        ]
        proposals.sort(key=lambda p: p.score, reverse=True)
        return proposals

    async def enact(
        self,
        org_id: str,
        decisions: Sequence[ModelPolicyDecision],
        actor: str = SYSTEM_ACTOR,
    ) -> list[ModelQuarantineDecision]:
        """Auto-quarantine the decisions that allow it.

        Tests that are already quarantined are skipped.
        """
        enacted: list[ModelQuarantineDecision] = []
        for decision in decisions:
            if (
                decision.action is not EnumPolicyAction.QUARANTINE
                or not decision.can_auto_quarantine
                or decision.test_id is None
            ):
                continue
            try:
                enacted.append(
                    await self.quarantine(
                        org_id,
                        decision.test_id,
                        rationale=decision.reason,
                        actor=actor,
                        until=decision.suggested_quarantine_until,
                    )
                )
            except QuarantineConflictError:
                logger.debug(
                    "Already quarantined, skipping",
                    extra={"test_id": str(decision.test_id)},
                )
        return enacted


__all__: list[str] = ["SYSTEM_ACTOR", "ServiceQuarantine"]
