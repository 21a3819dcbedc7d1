# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for FlakeGuardMetrics on a private registry."""

from __future__ import annotations

import pytest
from prometheus_client import CollectorRegistry

from flakeguard.enums import EnumJobKind, EnumPolicyAction, EnumPolicySource
from flakeguard.observability import FlakeGuardMetrics


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> FlakeGuardMetrics:
    return FlakeGuardMetrics(registry)


class TestFlakeGuardMetrics:
    def test_instances_do_not_share_registries(self) -> None:
        first = FlakeGuardMetrics()
        second = FlakeGuardMetrics()

        first.record_artifact_processed()

        assert first.registry is not second.registry
        assert second.registry.get_sample_value(
            "flakeguard_artifacts_processed_total"
        ) == 0.0

    def test_job_outcomes(
        self, metrics: FlakeGuardMetrics, registry: CollectorRegistry
    ) -> None:
        metrics.record_job_finished(EnumJobKind.INGEST, True, 1.5)
        metrics.record_job_finished(EnumJobKind.ANALYZE, False, 0.2)

        assert registry.get_sample_value(
            "flakeguard_jobs_completed_total", {"kind": "ingest"}
        ) == 1.0
        assert registry.get_sample_value(
            "flakeguard_jobs_failed_total", {"kind": "analyze"}
        ) == 1.0
        assert registry.get_sample_value(
            "flakeguard_job_duration_seconds_count",
            {"kind": "ingest", "status": "completed"},
        ) == 1.0
        assert registry.get_sample_value(
            "flakeguard_job_duration_seconds_sum",
            {"kind": "analyze", "status": "failed"},
        ) == pytest.approx(0.2)

    def test_tests_parsed_skips_zero_counts(
        self, metrics: FlakeGuardMetrics, registry: CollectorRegistry
    ) -> None:
        metrics.record_tests_parsed(passed=10, failed=2, errored=0, skipped=1)

        assert registry.get_sample_value(
            "flakeguard_tests_parsed_total", {"status": "passed"}
        ) == 10.0
        assert registry.get_sample_value(
            "flakeguard_tests_parsed_total", {"status": "error"}
        ) is None

    def test_policy_and_decision_counters(
        self, metrics: FlakeGuardMetrics, registry: CollectorRegistry
    ) -> None:
        metrics.record_policy_cache_hit()
        metrics.record_policy_cache_miss(EnumPolicySource.DEFAULTS)
        metrics.record_decision(EnumPolicyAction.QUARANTINE)
        metrics.record_decision(EnumPolicyAction.QUARANTINE)

        assert registry.get_sample_value("flakeguard_policy_cache_hits_total") == 1.0
        assert registry.get_sample_value(
            "flakeguard_policy_cache_misses_total",
            {"source": EnumPolicySource.DEFAULTS.value},
        ) == 1.0
        assert registry.get_sample_value(
            "flakeguard_policy_decisions_total", {"action": "quarantine"}
        ) == 2.0

    def test_export_uses_text_exposition_format(self, metrics: FlakeGuardMetrics) -> None:
        metrics.set_jobs_queued(4)

        body = metrics.export_metrics().decode()

        assert "# TYPE flakeguard_jobs_queued gauge" in body
        assert "flakeguard_jobs_queued 4.0" in body
