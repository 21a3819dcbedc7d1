# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy engine: cached policy resolution and per-test decisions.

Resolution:
    Policies are cached per ``owner/repo:ref`` for ``ttl_seconds``. A miss
    loads the repository policy file through a ProtocolPolicySource and
    validates it. A missing file, a transport failure or a validation failure
    falls back to environment-derived defaults, and that fallback is cached
    too so a repository without a policy file is not fetched on every lookup.

Concurrency:
    Cache entries are immutable ModelPolicyCacheEntry values that are replaced
    wholesale, never mutated. Per-key asyncio locks make concurrent misses for
    one key share a single fetch while different keys load in parallel.

Evaluation order (first match wins):
    1. exempted test name       -> none, confidence 1.0
    2. excluded test path       -> none, confidence 1.0
    3. no flakiness data        -> none, confidence 0.1
    4. too few runs             -> none, confidence 0.2
    5. too few recent failures  -> none, confidence 0.3
    6. confidence below minimum -> none
    7. score >= quarantine threshold (after team override) -> quarantine
    8. score >= warn threshold  -> warn
    9. otherwise                -> none
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from flakeguard.enums import EnumPolicyAction, EnumPolicySource, EnumSeverity
from flakeguard.errors import FlakeGuardError, PolicyValidationError
from flakeguard.models import (
    ModelEvaluationContext,
    ModelFlakeScore,
    ModelPolicyCacheEntry,
    ModelPolicyCacheStats,
    ModelPolicyConfig,
    ModelPolicyDecision,
    ModelRepositoryRef,
)
from flakeguard.observability import FlakeGuardMetrics
from flakeguard.policy.policy_validation import (
    default_policy_config,
    parse_policy_document,
)
from flakeguard.policy.protocol_policy_source import ProtocolPolicySource
from flakeguard.utils import require_tenant, sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS: float = 300.0
DEFAULT_SWEEP_INTERVAL_SECONDS: float = 60.0
LONG_QUARANTINE_SCORE: float = 0.8


def cache_key(repository: ModelRepositoryRef, ref: str) -> str:
    return f"{_repository_prefix(repository)}{ref}"


def _repository_prefix(repository: ModelRepositoryRef) -> str:
    return f"{repository.org_id}:{repository.full_name}:"


def matches_glob(value: str, pattern: str, match_base: bool = False) -> bool:
    """Glob match where ``**/`` may also match zero directories.

    With ``match_base``, patterns without a slash are matched against the
    final path component as well.
    """
    value = value.replace("\\", "/")
    if fnmatch.fnmatchcase(value, pattern):
        return True
    if pattern.startswith("**/") and fnmatch.fnmatchcase(value, pattern[3:]):
        return True
    if match_base and "/" not in pattern:
        return fnmatch.fnmatchcase(value.rsplit("/", 1)[-1], pattern)
    return False


def determine_priority(score: float, confidence: float) -> EnumSeverity:
    if score > 0.8 and confidence > 0.8:
        return EnumSeverity.CRITICAL
    if score > 0.7 or (score > 0.5 and confidence > 0.9):
        return EnumSeverity.HIGH
    if score > 0.4:
        return EnumSeverity.MEDIUM
    return EnumSeverity.LOW


def suggested_quarantine_until(
    score: float, policy: ModelPolicyConfig, now: datetime
) -> datetime:
    """Quarantine expiry: the policy duration, doubled for very flaky tests."""
    days = policy.quarantine_duration_days
    if score > LONG_QUARANTINE_SCORE:
        days *= 2
    return now + timedelta(days=days)


class PolicyEngine:
    """Resolves repository policies and turns flake scores into decisions.

    Example:
        >>> engine = PolicyEngine(PolicySourceGitHub(token=token))
        >>> policy = await engine.get_policy(repo, ref="main")
        >>> decision = engine.evaluate(score, ModelEvaluationContext(test_name=name), policy)
    """

    def __init__(
        self,
        source: ProtocolPolicySource | None = None,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        defaults: ModelPolicyConfig | None = None,
        metrics: FlakeGuardMetrics | None = None,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._source = source
        self._ttl = timedelta(seconds=ttl_seconds)
        self._defaults = defaults or default_policy_config()
        self._metrics = metrics
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock or (lambda: datetime.now(UTC))

        self._cache: dict[str, ModelPolicyCacheEntry] = {}
        self._key_locks: dict[str, asyncio.Lock] = {}
        self._hits = 0
        self._misses = 0
        self._expired_evictions = 0
        self._invalidations = 0
        self._sweeper: asyncio.Task[None] | None = None

        logger.info(
            "PolicyEngine initialized",
            extra={
                "warn_threshold": self._defaults.warn_threshold,
                "quarantine_threshold": self._defaults.flaky_threshold,
                "min_occurrences": self._defaults.min_occurrences,
                "ttl_seconds": ttl_seconds,
            },
        )

    @property
    def defaults(self) -> ModelPolicyConfig:
        return self._defaults

    # -- resolution ---------------------------------------------------------

    async def get_policy(
        self,
        repository: ModelRepositoryRef,
        ref: str = "HEAD",
        correlation_id: UUID | None = None,
    ) -> ModelPolicyConfig:
        entry = await self.get_policy_entry(repository, ref, correlation_id)
        return entry.config

    async def get_policy_entry(
        self,
        repository: ModelRepositoryRef,
        ref: str = "HEAD",
        correlation_id: UUID | None = None,
    ) -> ModelPolicyCacheEntry:
        """Return the cached policy entry, loading it on a miss or expiry."""
        require_tenant(repository.org_id, "get_policy")
        key = cache_key(repository, ref)

        cached = self._get_from_cache(key)
        if cached is not None:
            return cached

        lock = self._key_locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self._get_from_cache(key)
            if cached is not None:
                return cached
            entry = await self._load(repository, ref, correlation_id or uuid4())
            self._cache[key] = entry
            self._misses += 1
            if self._metrics is not None:
                self._metrics.record_policy_cache_miss(entry.source)
            return entry

    def _get_from_cache(self, key: str) -> ModelPolicyCacheEntry | None:
        cached = self._cache.get(key)
        if cached is None:
            return None
        if cached.is_expired(self._clock()):
            del self._cache[key]
            self._expired_evictions += 1
            return None
        self._hits += 1
        if self._metrics is not None:
            self._metrics.record_policy_cache_hit()
        return cached

    async def _load(
        self,
        repository: ModelRepositoryRef,
        ref: str,
        correlation_id: UUID,
    ) -> ModelPolicyCacheEntry:
        log_extra = {
            "repository": repository.full_name,
            "ref": ref,
            "correlation_id": str(correlation_id),
        }
        errors: tuple[str, ...] = ()
        if self._source is None:
            return self._entry(self._defaults, EnumPolicySource.DEFAULTS, errors)

        try:
            text = await self._source.fetch_policy_file(repository, ref, correlation_id)
            if text is None:
                logger.info("No policy file, using defaults", extra=log_extra)
                return self._entry(self._defaults, EnumPolicySource.DEFAULTS, errors)
            config = parse_policy_document(text)
        except PolicyValidationError as e:
            errors = tuple(e.errors)
            logger.warning(
                "Invalid policy file, using defaults",
                extra={**log_extra, "validation_errors": list(errors)},
            )
            return self._entry(self._defaults, EnumPolicySource.DEFAULTS, errors)
        except FlakeGuardError as e:
            logger.warning(
                "Failed to load policy file, using defaults",
                extra={**log_extra, "error": sanitize_error_message(e)},
            )
            return self._entry(
                self._defaults,
                EnumPolicySource.DEFAULTS,
                (f"(load): {e.message}",),
            )

        logger.info(
            "Loaded policy file",
            extra={
                **log_extra,
                "warn_threshold": config.warn_threshold,
                "quarantine_threshold": config.flaky_threshold,
            },
        )
        return self._entry(config, EnumPolicySource.REPOSITORY, errors)

    def _entry(
        self,
        config: ModelPolicyConfig,
        source: EnumPolicySource,
        errors: tuple[str, ...],
    ) -> ModelPolicyCacheEntry:
        now = self._clock()
        return ModelPolicyCacheEntry(
            config=config,
            source=source,
            loaded_at=now,
            expires_at=now + self._ttl,
            validation_errors=errors,
        )

    def invalidate(self, repository: ModelRepositoryRef) -> int:
        """Drop every cached ref of one tenant's repository.

        Returns the entries removed.
        """
        require_tenant(repository.org_id, "invalidate")
        name = repository.full_name
        prefix = _repository_prefix(repository)
        stale = [key for key in self._cache if key.startswith(prefix)]
        for key in stale:
            del self._cache[key]
        for key in [k for k in self._key_locks if k.startswith(prefix)]:
            self._discard_lock(key)
        self._invalidations += len(stale)
        if stale:
            logger.info(
                "Policy cache invalidated",
                extra={"repository": name, "entries": len(stale)},
            )
        return len(stale)

    def sweep_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._cache.items() if entry.is_expired(now)]
        for key in expired:
            del self._cache[key]
            self._discard_lock(key)
        self._expired_evictions += len(expired)
        if expired:
            logger.debug("Swept expired policies", extra={"entries": len(expired)})
        return len(expired)

    def _discard_lock(self, key: str) -> None:
        lock = self._key_locks.get(key)
        if lock is not None and not lock.locked():
            del self._key_locks[key]

    def get_cache_stats(self) -> ModelPolicyCacheStats:
        now = self._clock()
        by_source: dict[str, int] = {}
        for entry in self._cache.values():
            by_source[entry.source.value] = by_source.get(entry.source.value, 0) + 1
        return ModelPolicyCacheStats(
            size=len(self._cache),
            expired=sum(1 for e in self._cache.values() if e.is_expired(now)),
            hits=self._hits,
            misses=self._misses,
            expired_evictions=self._expired_evictions,
            invalidations=self._invalidations,
            by_source=by_source,
        )

    async def start_sweeper(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(
                self._sweep_loop(), name="policy-cache-sweeper"
            )

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep_expired()

    # -- evaluation ---------------------------------------------------------

    def evaluate(
        self,
        score: ModelFlakeScore | None,
        context: ModelEvaluationContext,
        policy: ModelPolicyConfig,
        now: datetime | None = None,
    ) -> ModelPolicyDecision:
        """Evaluate one test. See the module docstring for the rule order."""
        decision = self._evaluate(score, context, policy, now or self._clock())
        if self._metrics is not None:
            self._metrics.record_decision(decision.action)
        return decision

    def evaluate_many(
        self,
        items: Sequence[tuple[ModelFlakeScore | None, ModelEvaluationContext]],
        policy: ModelPolicyConfig,
        now: datetime | None = None,
    ) -> list[ModelPolicyDecision]:
        evaluated_at = now or self._clock()
        decisions = [
            self.evaluate(score, context, policy, evaluated_at)
            for score, context in items
        ]
        logger.info(
            "Policy evaluation completed",
            extra={
                "total": len(decisions),
                "warn": sum(1 for d in decisions if d.action is EnumPolicyAction.WARN),
                "quarantine": sum(
                    1 for d in decisions if d.action is EnumPolicyAction.QUARANTINE
                ),
                "exempted": sum(1 for d in decisions if d.exempted),
            },
        )
        return decisions

    def _evaluate(
        self,
        flake: ModelFlakeScore | None,
        context: ModelEvaluationContext,
        policy: ModelPolicyConfig,
        now: datetime,
    ) -> ModelPolicyDecision:
        test_id = flake.test_id if flake is not None else None

        def none(reason: str, confidence: float, **flags: bool) -> ModelPolicyDecision:
            return ModelPolicyDecision(
                test_name=context.test_name,
                test_id=test_id,
                action=EnumPolicyAction.NONE,
                reason=reason,
                confidence=confidence,
                priority=_priority_of(flake),
                evaluated_at=now,
                **flags,
            )

        if any(matches_glob(context.test_name, p) for p in policy.exempted_tests):
            return none(
                "Test is explicitly exempted in policy configuration",
                1.0,
                exempted=True,
            )

        if context.test_path and any(
            matches_glob(context.test_path, p, match_base=True)
            for p in policy.exclude_paths
        ):
            return none(
                f'Test path "{context.test_path}" matches exclusion pattern', 1.0
            )

        if flake is None:
            return none("No flakiness analysis data available for test", 0.1)

        features = flake.features
        if features.total_runs < policy.min_occurrences:
            return none(
                f"Insufficient data: only {features.total_runs} runs "
                f"(minimum: {policy.min_occurrences})",
                0.2,
            )
        if flake.score is None:
            return none(flake.reason or "No flakiness score computed for test", 0.1)

        if features.recent_failures < policy.min_recent_failures:
            return none(
                f"Too few recent failures: {features.recent_failures} "
                f"(minimum: {policy.min_recent_failures})",
                0.3,
            )

        if flake.confidence < policy.confidence_threshold:
            return none(
                f"Low confidence in flakiness analysis: {flake.confidence:.3f} "
                f"< {policy.confidence_threshold}",
                flake.confidence,
            )

        warn_threshold = policy.warn_threshold
        quarantine_threshold = policy.flaky_threshold
        auto_enabled = policy.auto_quarantine_enabled
        override = policy.team_overrides.get(context.team) if context.team else None
        if override is not None:
            if override.warn_threshold is not None:
                warn_threshold = override.warn_threshold
            if override.flaky_threshold is not None:
                quarantine_threshold = override.flaky_threshold
            if override.auto_quarantine_enabled is not None:
                auto_enabled = override.auto_quarantine_enabled
        override_applied = override is not None

        score = flake.score
        priority = determine_priority(score, flake.confidence)

        if score >= quarantine_threshold:
            can_auto = auto_enabled and all(
                label in context.labels for label in policy.labels_required
            )
            suffix = " - auto-quarantine enabled" if can_auto else ""
            return ModelPolicyDecision(
                test_name=context.test_name,
                test_id=test_id,
                action=EnumPolicyAction.QUARANTINE,
                reason=(
                    f"High flakiness score ({score:.3f}) exceeds quarantine "
                    f"threshold ({quarantine_threshold}){suffix}"
                ),
                confidence=flake.confidence,
                priority=priority,
                evaluated_at=now,
                team_override_applied=override_applied,
                can_auto_quarantine=can_auto,
                suggested_quarantine_until=suggested_quarantine_until(
                    score, policy, now
                ),
            )

        if score >= warn_threshold:
            return ModelPolicyDecision(
                test_name=context.test_name,
                test_id=test_id,
                action=EnumPolicyAction.WARN,
                reason=(
                    f"Moderate flakiness score ({score:.3f}) exceeds warning "
                    f"threshold ({warn_threshold})"
                ),
                confidence=flake.confidence,
                priority=priority,
                evaluated_at=now,
                team_override_applied=override_applied,
            )

        return ModelPolicyDecision(
            test_name=context.test_name,
            test_id=test_id,
            action=EnumPolicyAction.NONE,
            reason=(
                f"Low flakiness score ({score:.3f}) below warning threshold "
                f"({warn_threshold})"
            ),
            confidence=flake.confidence,
            priority=priority,
            evaluated_at=now,
            team_override_applied=override_applied,
        )


def _priority_of(flake: ModelFlakeScore | None) -> EnumSeverity:
    if flake is None or flake.score is None:
        return EnumSeverity.LOW
    return determine_priority(flake.score, flake.confidence)


__all__: list[str] = [
    "DEFAULT_CACHE_TTL_SECONDS",
    "PolicyEngine",
    "cache_key",
    "determine_priority",
    "matches_glob",
    "suggested_quarantine_until",
]
