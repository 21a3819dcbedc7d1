# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Failure clustering by normalized signature.

Unrelated tests failing with the same normalized message usually share one
root cause (a broken fixture, an unavailable service). Clusters are derived
on demand from occurrences and never stored.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from flakeguard.models import ModelFailureCluster, ModelOccurrence
from flakeguard.utils import failure_signature

MIN_CLUSTER_SIZE: int = 2


def cluster_failures(
    occurrences: Iterable[ModelOccurrence],
) -> list[ModelFailureCluster]:
    """Group failing occurrences by failure signature.

    Occurrences without a stored signature are signed from their message.
    Only groups of at least two occurrences are returned, largest first.
    """
    counts: dict[str, int] = {}
    samples: dict[str, str] = {}
    tests: dict[str, dict[UUID, None]] = {}

    for occurrence in occurrences:
        if not occurrence.status.is_failure:
            continue
        signature = occurrence.failure_signature or failure_signature(
            occurrence.failure_message
        )
        if signature is None:
            continue
        counts[signature] = counts.get(signature, 0) + 1
        samples.setdefault(signature, occurrence.failure_message or "")
        tests.setdefault(signature, {})[occurrence.test_id] = None

    clusters = [
        ModelFailureCluster(
            signature=signature,
            sample_message=samples[signature],
            occurrence_count=count,
            test_ids=tuple(tests[signature]),
        )
        for signature, count in counts.items()
        if count >= MIN_CLUSTER_SIZE
    ]
    clusters.sort(key=lambda c: (-c.occurrence_count, c.signature))
    return clusters


__all__: list[str] = ["MIN_CLUSTER_SIZE", "cluster_failures"]
