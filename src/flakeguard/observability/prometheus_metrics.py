# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Prometheus metrics for the ingestion and scoring pipeline.

Counters and histograms are registered on an injectable CollectorRegistry so
tests and embedded runtimes never collide on the process-wide default
registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from flakeguard.enums import EnumJobKind, EnumPolicyAction, EnumPolicySource

logger = logging.getLogger(__name__)


class MetricType(Enum):
    """Types of Prometheus metrics."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass(frozen=True)
class MetricDefinition:
    """Definition for a Prometheus metric."""

    name: str
    description: str
    metric_type: MetricType
    labels: tuple[str, ...]
    buckets: tuple[float, ...] | None = None


_DEFINITIONS: tuple[MetricDefinition, ...] = (
    MetricDefinition(
        "flakeguard_jobs_submitted_total",
        "Jobs accepted by the orchestrator",
        MetricType.COUNTER,
        ("kind", "deduplicated"),
    ),
    MetricDefinition(
        "flakeguard_jobs_completed_total",
        "Jobs that reached the completed state",
        MetricType.COUNTER,
        ("kind",),
    ),
    MetricDefinition(
        "flakeguard_jobs_failed_total",
        "Jobs that reached the failed state",
        MetricType.COUNTER,
        ("kind",),
    ),
    MetricDefinition(
        "flakeguard_job_retries_total",
        "Job attempts scheduled for retry after a transient error",
        MetricType.COUNTER,
        ("kind",),
    ),
    MetricDefinition(
        "flakeguard_job_duration_seconds",
        "Wall time of one job attempt",
        MetricType.HISTOGRAM,
        ("kind", "status"),
        buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
    ),
    MetricDefinition(
        "flakeguard_jobs_queued",
        "Jobs waiting for a worker",
        MetricType.GAUGE,
        (),
    ),
    MetricDefinition(
        "flakeguard_artifacts_processed_total",
        "Artifacts downloaded, extracted and stored",
        MetricType.COUNTER,
        (),
    ),
    MetricDefinition(
        "flakeguard_artifacts_failed_total",
        "Artifacts that failed to download or extract",
        MetricType.COUNTER,
        ("code",),
    ),
    MetricDefinition(
        "flakeguard_tests_parsed_total",
        "Test cases parsed from reports",
        MetricType.COUNTER,
        ("status",),
    ),
    MetricDefinition(
        "flakeguard_policy_cache_hits_total",
        "Policy lookups served from cache",
        MetricType.COUNTER,
        (),
    ),
    MetricDefinition(
        "flakeguard_policy_cache_misses_total",
        "Policy lookups that loaded the policy file",
        MetricType.COUNTER,
        ("source",),
    ),
    MetricDefinition(
        "flakeguard_policy_decisions_total",
        "Policy decisions emitted",
        MetricType.COUNTER,
        ("action",),
    ),
)


class FlakeGuardMetrics:
    """Prometheus metrics collector for FlakeGuard.

    Args:
        registry: Registry to register on; a private one is created when None.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()
        self._metrics: dict[str, Counter | Gauge | Histogram] = {}
        for definition in _DEFINITIONS:
            self._register_metric(definition)
        logger.debug(
            "Prometheus metrics registered", extra={"count": len(self._metrics)}
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def _register_metric(self, definition: MetricDefinition) -> None:
        if definition.metric_type is MetricType.COUNTER:
            metric: Counter | Gauge | Histogram = Counter(
                definition.name,
                definition.description,
                definition.labels,
                registry=self._registry,
            )
        elif definition.metric_type is MetricType.GAUGE:
            metric = Gauge(
                definition.name,
                definition.description,
                definition.labels,
                registry=self._registry,
            )
        else:
            metric = Histogram(
                definition.name,
                definition.description,
                definition.labels,
                buckets=definition.buckets or Histogram.DEFAULT_BUCKETS,
                registry=self._registry,
            )
        self._metrics[definition.name] = metric

    def record_job_submitted(self, kind: EnumJobKind, deduplicated: bool) -> None:
        self._metrics["flakeguard_jobs_submitted_total"].labels(
            kind=kind.value, deduplicated=str(deduplicated).lower()
        ).inc()

    def record_job_finished(
        self, kind: EnumJobKind, succeeded: bool, duration_seconds: float
    ) -> None:
        """Record a terminal job outcome and the duration of its last attempt."""
        name = (
            "flakeguard_jobs_completed_total"
            if succeeded
            else "flakeguard_jobs_failed_total"
        )
        self._metrics[name].labels(kind=kind.value).inc()
        self._metrics["flakeguard_job_duration_seconds"].labels(
            kind=kind.value, status="completed" if succeeded else "failed"
        ).observe(duration_seconds)

    def record_job_retry(self, kind: EnumJobKind) -> None:
        self._metrics["flakeguard_job_retries_total"].labels(kind=kind.value).inc()

    def set_jobs_queued(self, count: int) -> None:
        self._metrics["flakeguard_jobs_queued"].set(count)

    def record_artifact_processed(self) -> None:
        self._metrics["flakeguard_artifacts_processed_total"].inc()

    def record_artifact_failed(self, code: str) -> None:
        self._metrics["flakeguard_artifacts_failed_total"].labels(code=code).inc()

    def record_tests_parsed(
        self, passed: int, failed: int, errored: int, skipped: int
    ) -> None:
        counter = self._metrics["flakeguard_tests_parsed_total"]
        for status, count in (
            ("passed", passed),
            ("failed", failed),
            ("error", errored),
            ("skipped", skipped),
        ):
            if count:
                counter.labels(status=status).inc(count)

    def record_policy_cache_hit(self) -> None:
        self._metrics["flakeguard_policy_cache_hits_total"].inc()

    def record_policy_cache_miss(self, source: EnumPolicySource) -> None:
        self._metrics["flakeguard_policy_cache_misses_total"].labels(
            source=source.value
        ).inc()

    def record_decision(self, action: EnumPolicyAction) -> None:
        self._metrics["flakeguard_policy_decisions_total"].labels(
            action=action.value
        ).inc()

    def export_metrics(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self._registry)


__all__: list[str] = ["FlakeGuardMetrics", "MetricDefinition", "MetricType"]
