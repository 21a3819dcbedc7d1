# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Decision sink protocol.

The analysis pipeline hands its output to a sink; delivering it to a
reporting surface (check runs, chat, dashboards) is the sink's concern.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable
from uuid import UUID

from flakeguard.models import (
    ModelAnalysisResult,
    ModelFailureCluster,
    ModelPolicyDecision,
    ModelRepositoryRef,
)


@runtime_checkable
class ProtocolDecisionSink(Protocol):
    async def publish(
        self,
        repository: ModelRepositoryRef,
        decisions: Sequence[ModelPolicyDecision],
        result: ModelAnalysisResult,
        clusters: Sequence[ModelFailureCluster],
        correlation_id: UUID | None = None,
    ) -> None: ...


__all__: list[str] = ["ProtocolDecisionSink"]
