# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for the logging and in-memory decision sinks."""

from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from flakeguard.enums import EnumPolicyAction, EnumSeverity
from flakeguard.jobs import DecisionSinkLogging, InMemoryDecisionSink
from flakeguard.models import (
    ModelAnalysisResult,
    ModelPolicyDecision,
    ModelRepositoryRef,
)
from tests.conftest import FIXED_NOW


def decision(name: str, action: EnumPolicyAction) -> ModelPolicyDecision:
    return ModelPolicyDecision(
        test_name=name,
        test_id=uuid4(),
        action=action,
        reason=f"{action.value} for {name}",
        confidence=0.9,
        priority=EnumSeverity.HIGH,
        evaluated_at=FIXED_NOW,
    )


DECISIONS = [
    decision("test_a", EnumPolicyAction.NONE),
    decision("test_b", EnumPolicyAction.WARN),
    decision("test_c", EnumPolicyAction.QUARANTINE),
]


@pytest.mark.asyncio
async def test_logging_sink_logs_actionable_decisions_only(
    repository: ModelRepositoryRef, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO, logger="flakeguard.jobs.decision_sink_logging")

    await DecisionSinkLogging().publish(
        repository, DECISIONS, ModelAnalysisResult(flaky_tests=2), [], uuid4()
    )

    messages = [r.getMessage() for r in caplog.records]
    assert messages == [
        "Flakiness analysis published",
        "Policy decision",
        "Policy decision",
    ]
    assert [getattr(r, "test_name", None) for r in caplog.records[1:]] == [
        "test_b",
        "test_c",
    ]


@pytest.mark.asyncio
async def test_inmemory_sink_records_publication(repository: ModelRepositoryRef) -> None:
    sink = InMemoryDecisionSink()
    result = ModelAnalysisResult(tests_scored=3)

    await sink.publish(repository, DECISIONS, result, [])

    assert len(sink.published) == 1
    assert sink.published[0].decisions == tuple(DECISIONS)
    assert sink.published[0].result is result
    assert sink.published[0].correlation_id is None
