# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Decision sink that keeps every publication in memory."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from flakeguard.models import (
    ModelAnalysisResult,
    ModelFailureCluster,
    ModelPolicyDecision,
    ModelRepositoryRef,
)


@dataclass(frozen=True)
class PublishedAnalysis:
    repository: ModelRepositoryRef
    decisions: tuple[ModelPolicyDecision, ...]
    result: ModelAnalysisResult
    clusters: tuple[ModelFailureCluster, ...]
    correlation_id: UUID | None


class InMemoryDecisionSink:
    def __init__(self) -> None:
        self.published: list[PublishedAnalysis] = []

    async def publish(
        self,
        repository: ModelRepositoryRef,
        decisions: Sequence[ModelPolicyDecision],
        result: ModelAnalysisResult,
        clusters: Sequence[ModelFailureCluster],
        correlation_id: UUID | None = None,
    ) -> None:
        self.published.append(
            PublishedAnalysis(
                repository=repository,
                decisions=tuple(decisions),
                result=result,
                clusters=tuple(clusters),
                correlation_id=correlation_id,
            )
        )


__all__: list[str] = ["InMemoryDecisionSink", "PublishedAnalysis"]
