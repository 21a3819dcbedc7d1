# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Multi-factor flakiness scorer.

Scores one test case from its execution history. The score is a weighted sum
of four factors, each in [0, 1] and exposed individually on
``ModelFlakeFeatures``:

    failure_rate      failures / (runs - skipped)
    inconsistency     adjacent pass<->fail transitions / (runs - 1)
    recency           linearly decayed failure rate over the last 10 runs
    branch_diversity  failing branches / distinct branches (0 for one branch)

Histories below ``min_occurrences`` produce an insufficient-data result with
``score=None``; they are never reported as a confident zero.

Example:
    >>> scorer = FlakinessScorer()
    >>> result = scorer.score(test_id, history, policy)
    >>> result.features.inconsistency
    1.0
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from uuid import UUID

from flakeguard.enums import (
    EnumFlakePattern,
    EnumFlakeRecommendation,
    EnumSeverity,
    EnumTestStatus,
)
from flakeguard.models import (
    ModelFlakeFeatures,
    ModelFlakeScore,
    ModelOccurrence,
    ModelPolicyConfig,
    ModelScoringWeights,
)

RECENT_WINDOW: int = 10
CONFIDENCE_FULL_RUNS: int = 20
MIN_RUNS_FOR_INCONSISTENCY: int = 3

TIMING_KEYWORDS: tuple[str, ...] = (
    "timeout",
    "wait",
    "async",
    "race",
    "timing",
    "delay",
)
ENVIRONMENTAL_KEYWORDS: tuple[str, ...] = (
    "connection",
    "network",
    "unavailable",
    "service",
    "port",
    "bind",
)

_RECOMMENDATION_TEXT: dict[str, str] = {
    "quarantine": (
        "Consider quarantining this test and investigating root cause immediately."
    ),
    "timing": (
        "Add explicit waits, increase timeouts, or use more reliable "
        "synchronization mechanisms."
    ),
    "environmental": (
        "Review external dependencies, network configurations, and service "
        "availability."
    ),
    "recent": (
        "Monitor closely and consider temporarily skipping until issue is resolved."
    ),
    "default": "Monitor for patterns and consider adding more robust assertions.",
}


def window_history(
    history: Sequence[ModelOccurrence],
    policy: ModelPolicyConfig,
    now: datetime,
) -> list[ModelOccurrence]:
    """Return the scored window: most recent first, within the lookback period,
    truncated to the rolling window size."""
    cutoff = now - timedelta(days=policy.lookback_days)
    ordered = sorted(
        history,
        key=lambda o: (o.created_at, o.run_id, o.attempt),
        reverse=True,
    )
    return [o for o in ordered if o.created_at >= cutoff][: policy.rolling_window_size]


def failure_rate(executions: Sequence[ModelOccurrence]) -> float:
    counted = [e for e in executions if e.status is not EnumTestStatus.SKIPPED]
    if not counted:
        return 0.0
    return sum(1 for e in counted if e.status.is_failure) / len(counted)


def inconsistency_penalty(executions: Sequence[ModelOccurrence]) -> float:
    """Fraction of adjacent pairs that flip between passed and failed.

    A skipped run breaks the chain; neither neighbour counts as a transition
    through it.
    """
    if len(executions) < MIN_RUNS_FOR_INCONSISTENCY:
        return 0.0
    transitions = 0
    for previous, current in zip(executions, executions[1:]):
        flipped = (
            previous.status is EnumTestStatus.PASSED and current.status.is_failure
        ) or (previous.status.is_failure and current.status is EnumTestStatus.PASSED)
        if flipped:
            transitions += 1
    return min(transitions / (len(executions) - 1), 1.0)


def recency_factor(executions: Sequence[ModelOccurrence]) -> float:
    """Failure rate over the most recent runs, linearly weighted (newest = 1)."""
    window = min(RECENT_WINDOW, len(executions))
    if window == 0:
        return 0.0
    weighted_failures = 0.0
    total_weight = 0.0
    for index, execution in enumerate(executions[:window]):
        weight = (window - index) / window
        total_weight += weight
        if execution.status.is_failure:
            weighted_failures += weight
    return weighted_failures / total_weight


def branch_diversity_factor(executions: Sequence[ModelOccurrence]) -> float:
    branches = {e.branch or "" for e in executions}
    if len(branches) <= 1:
        return 0.0
    failing = {e.branch or "" for e in executions if e.status.is_failure}
    return len(failing) / len(branches)


def detect_pattern(executions: Sequence[ModelOccurrence]) -> EnumFlakePattern:
    messages = [
        e.failure_message.lower() for e in executions if e.failure_message
    ]
    if not messages:
        return EnumFlakePattern.UNKNOWN
    if any(k in m for m in messages for k in TIMING_KEYWORDS):
        return EnumFlakePattern.TIMING
    if any(k in m for m in messages for k in ENVIRONMENTAL_KEYWORDS):
        return EnumFlakePattern.ENVIRONMENTAL
    return EnumFlakePattern.INTERMITTENT


def determine_severity(score: float, recent_failures: int) -> EnumSeverity:
    if score >= 0.7 or recent_failures >= 5:
        return EnumSeverity.CRITICAL
    if score >= 0.5 or recent_failures >= 3:
        return EnumSeverity.HIGH
    if score >= 0.3 or recent_failures >= 2:
        return EnumSeverity.MEDIUM
    return EnumSeverity.LOW


def recommendation_text(
    score: float, pattern: EnumFlakePattern, recent_failures: int
) -> str:
    if score >= 0.7:
        return _RECOMMENDATION_TEXT["quarantine"]
    if pattern is EnumFlakePattern.TIMING:
        return _RECOMMENDATION_TEXT["timing"]
    if pattern is EnumFlakePattern.ENVIRONMENTAL:
        return _RECOMMENDATION_TEXT["environmental"]
    if recent_failures >= 3:
        return _RECOMMENDATION_TEXT["recent"]
    return _RECOMMENDATION_TEXT["default"]


def analysis_confidence(
    executions: Sequence[ModelOccurrence], now: datetime
) -> float:
    """Confidence grows with sample size and with the age of the history."""
    if not executions:
        return 0.0
    confidence = min(1.0, len(executions) / CONFIDENCE_FULL_RUNS)
    age = now - min(e.created_at for e in executions)
    if age > timedelta(days=7):
        confidence = min(1.0, confidence * 1.2)
    elif age < timedelta(days=1):
        confidence *= 0.5
    return confidence


class FlakinessScorer:
    """Computes ``ModelFlakeScore`` values from execution histories.

    Weights come from the policy's ``scoring_weights`` unless a fixed set is
    passed to the constructor.
    """

    def __init__(self, weights: ModelScoringWeights | None = None) -> None:
        self._weights = weights

    def score(
        self,
        test_id: UUID,
        history: Sequence[ModelOccurrence],
        policy: ModelPolicyConfig | None = None,
        now: datetime | None = None,
    ) -> ModelFlakeScore:
        """Score one test case.

        Args:
            test_id: Test case id the history belongs to
            history: Executions of the test, any order
            policy: Gates, window and weights (defaults when None)
            now: Reference time for the lookback window and confidence

        Returns:
            The score; ``insufficient_data`` is set and ``score`` is None when
            the window holds fewer than ``min_occurrences`` runs or only
            skipped runs.
        """
        policy = policy or ModelPolicyConfig()
        now = now or datetime.now(UTC)
        weights = self._weights or policy.scoring_weights
        executions = window_history(history, policy, now)

        total = len(executions)
        failures = sum(1 for e in executions if e.status.is_failure)
        skipped = sum(1 for e in executions if e.status is EnumTestStatus.SKIPPED)
        recent_failures = sum(
            1 for e in executions[:RECENT_WINDOW] if e.status.is_failure
        )

        if total < policy.min_occurrences or total == skipped:
            reason = (
                f"Insufficient data: only {total} runs "
                f"(minimum: {policy.min_occurrences})"
                if total < policy.min_occurrences
                else "Insufficient data: every run in the window was skipped"
            )
            return ModelFlakeScore(
                test_id=test_id,
                score=None,
                confidence=analysis_confidence(executions, now),
                features=ModelFlakeFeatures(
                    total_runs=total,
                    failures=failures,
                    skipped=skipped,
                    recent_failures=recent_failures,
                ),
                recommendation=EnumFlakeRecommendation.STABLE,
                recommendation_text=reason,
                insufficient_data=True,
                reason=reason,
                last_updated=now,
            )

        features = ModelFlakeFeatures(
            failure_rate=failure_rate(executions),
            inconsistency=inconsistency_penalty(executions),
            recency=recency_factor(executions),
            branch_diversity=branch_diversity_factor(executions),
            total_runs=total,
            failures=failures,
            skipped=skipped,
            recent_failures=recent_failures,
        )
        raw = (
            features.failure_rate * weights.failure_rate
            + features.inconsistency * weights.inconsistency
            + features.recency * weights.recency
            + features.branch_diversity * weights.branch_diversity
        )
        value = max(0.0, min(1.0, raw))
        pattern = detect_pattern(executions)

        if value >= policy.flaky_threshold:
            recommendation = EnumFlakeRecommendation.QUARANTINE
        elif value >= policy.warn_threshold:
            recommendation = EnumFlakeRecommendation.MONITOR
        else:
            recommendation = EnumFlakeRecommendation.STABLE

        return ModelFlakeScore(
            test_id=test_id,
            score=value,
            confidence=analysis_confidence(executions, now),
            features=features,
            pattern=pattern,
            severity=determine_severity(value, recent_failures),
            recommendation=recommendation,
            recommendation_text=recommendation_text(value, pattern, recent_failures),
            insufficient_data=False,
            reason=f"Scored {total} runs within {policy.lookback_days} days",
            last_updated=now,
        )

    @staticmethod
    def summarize(scores: Sequence[ModelFlakeScore]) -> tuple[float, list[str]]:
        """Overall score and repository-level recommendations.

        The overall score is the mean score of the flaky tests, 0 when none.
        """
        flaky = [s for s in scores if s.is_flaky and s.score is not None]
        if not flaky:
            return 0.0, []
        overall = sum(s.score for s in flaky if s.score is not None) / len(flaky)

        recommendations: list[str] = []
        critical = sum(1 for s in flaky if s.severity is EnumSeverity.CRITICAL)
        if critical:
            recommendations.append(
                f"Quarantine {critical} critical flaky {_tests(critical)} immediately"
            )
        timing = sum(1 for s in flaky if s.pattern is EnumFlakePattern.TIMING)
        if timing:
            recommendations.append(
                f"Review timing and synchronization in {timing} {_tests(timing)}"
            )
        environmental = sum(
            1 for s in flaky if s.pattern is EnumFlakePattern.ENVIRONMENTAL
        )
        if environmental:
            recommendations.append(
                f"Investigate environmental dependencies for {environmental} "
                f"{_tests(environmental)}"
            )
        if len(flaky) > 10:
            recommendations.append(
                "Consider implementing systematic test quality improvements"
            )
        return overall, recommendations


def _tests(count: int) -> str:
    return "test" if count == 1 else "tests"


__all__: list[str] = [
    "ENVIRONMENTAL_KEYWORDS",
    "TIMING_KEYWORDS",
    "FlakinessScorer",
    "analysis_confidence",
    "branch_diversity_factor",
    "detect_pattern",
    "determine_severity",
    "failure_rate",
    "inconsistency_penalty",
    "recency_factor",
    "recommendation_text",
    "window_history",
]
