# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Decision sink that writes analysis output to the log."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import UUID

from flakeguard.enums import EnumPolicyAction
from flakeguard.models import (
    ModelAnalysisResult,
    ModelFailureCluster,
    ModelPolicyDecision,
    ModelRepositoryRef,
)

logger = logging.getLogger(__name__)


class DecisionSinkLogging:
    """Logs a summary plus one line per actionable decision."""

    async def publish(
        self,
        repository: ModelRepositoryRef,
        decisions: Sequence[ModelPolicyDecision],
        result: ModelAnalysisResult,
        clusters: Sequence[ModelFailureCluster],
        correlation_id: UUID | None = None,
    ) -> None:
        corr = str(correlation_id) if correlation_id else None
        logger.info(
            "Flakiness analysis published",
            extra={
                "repository": repository.full_name,
                "correlation_id": corr,
                "flaky_tests": result.flaky_tests,
                "overall_score": round(result.overall_score, 3),
                "clusters": len(clusters),
                "recommendations": list(result.recommendations),
            },
        )
        for decision in decisions:
            if decision.action is EnumPolicyAction.NONE:
                continue
            logger.info(
                "Policy decision",
                extra={
                    "repository": repository.full_name,
                    "correlation_id": corr,
                    "test_name": decision.test_name,
                    "action": decision.action.value,
                    "priority": decision.priority.value,
                    "reason": decision.reason,
                },
            )


__all__: list[str] = ["DecisionSinkLogging"]
