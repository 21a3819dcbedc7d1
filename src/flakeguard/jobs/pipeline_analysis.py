# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Analysis pipeline: history -> scores -> decisions.

Scores every known test case of the repository, persists the scores,
evaluates the repository policy, enacts auto-quarantine where the policy
allows it, and publishes the outcome to the decision sink.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from flakeguard.enums import EnumJobPhase, EnumPolicyAction
from flakeguard.jobs.protocol_decision_sink import ProtocolDecisionSink
from flakeguard.jobs.protocol_job_pipeline import ProgressCallback
from flakeguard.models import (
    ModelAnalysisResult,
    ModelEvaluationContext,
    ModelFlakeScore,
    ModelJob,
    ModelJobProgress,
    ModelOccurrence,
)
from flakeguard.policy import PolicyEngine, ServiceQuarantine
from flakeguard.scoring import FlakinessScorer, cluster_failures
from flakeguard.storage import ProtocolTestHistoryStore
from flakeguard.utils import require_tenant

logger = logging.getLogger(__name__)

_PROGRESS_EVERY: int = 50


class PipelineAnalysis:
    """Runs ANALYZE jobs."""

    def __init__(
        self,
        store: ProtocolTestHistoryStore,
        policy_engine: PolicyEngine,
        quarantine: ServiceQuarantine,
        scorer: FlakinessScorer | None = None,
        sink: ProtocolDecisionSink | None = None,
    ) -> None:
        self._store = store
        self._policy_engine = policy_engine
        self._quarantine = quarantine
        self._scorer = scorer or FlakinessScorer()
        self._sink = sink

    async def run(self, job: ModelJob, progress: ProgressCallback) -> ModelAnalysisResult:
        repository = job.repository
        org_id = repository.org_id
        require_tenant(org_id, "analyze_repository")
        now = datetime.now(UTC)

        policy = await self._policy_engine.get_policy(
            repository, ref=job.branch or "HEAD", correlation_id=job.correlation_id
        )
        cases = await self._store.list_test_cases(org_id, repository.full_name)
        total = len(cases)
        await progress(ModelJobProgress(phase=EnumJobPhase.ANALYZING, total=total))

        since = now - timedelta(days=policy.lookback_days)
        scores: list[ModelFlakeScore] = []
        failing: list[ModelOccurrence] = []
        items: list[tuple[ModelFlakeScore | None, ModelEvaluationContext]] = []

        for index, case in enumerate(cases, start=1):
            history = await self._store.get_history(
                org_id, case.id, since=since, limit=policy.rolling_window_size
            )
            if not history:
                continue
            score = self._scorer.score(case.id, history, policy, now)
            await self._store.save_flake_score(org_id, score)
            scores.append(score)
            failing.extend(o for o in history if o.status.is_failure)
            items.append(
                (
                    score,
                    ModelEvaluationContext(
                        test_name=case.key.display_name,
                        test_path=case.file,
                        team=case.owner_team,
                        labels=job.labels,
                    ),
                )
            )
            if index % _PROGRESS_EVERY == 0:
                await progress(
                    ModelJobProgress(
                        phase=EnumJobPhase.ANALYZING, processed=index, total=total
                    )
                )

        decisions = self._policy_engine.evaluate_many(items, policy, now)
        enacted = await self._quarantine.enact(org_id, decisions)
        clusters = cluster_failures(failing)
        overall, recommendations = self._scorer.summarize(scores)

        result = ModelAnalysisResult(
            tests_scored=sum(1 for s in scores if not s.insufficient_data),
            insufficient_data=sum(1 for s in scores if s.insufficient_data),
            flaky_tests=sum(1 for s in scores if s.is_flaky),
            warned=sum(1 for d in decisions if d.action is EnumPolicyAction.WARN),
            quarantine_recommended=sum(
                1 for d in decisions if d.action is EnumPolicyAction.QUARANTINE
            ),
            quarantined=len(enacted),
            failure_clusters=len(clusters),
            overall_score=overall,
            recommendations=tuple(recommendations),
        )
        if self._sink is not None:
            await self._sink.publish(
                repository, decisions, result, clusters, job.correlation_id
            )
        await progress(
            ModelJobProgress(phase=EnumJobPhase.ANALYZING, processed=total, total=total)
        )
        logger.info(
            "Analysis finished",
            extra={
                "job_id": str(job.id),
                "repository": repository.full_name,
                "tests_scored": result.tests_scored,
                "flaky_tests": result.flaky_tests,
                "quarantined": result.quarantined,
                "correlation_id": str(job.correlation_id),
            },
        )
        return result


__all__: list[str] = ["PipelineAnalysis"]
