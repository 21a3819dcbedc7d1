# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Flakiness scoring and failure clustering."""

from flakeguard.scoring.failure_clustering import cluster_failures
from flakeguard.scoring.flakiness_scorer import FlakinessScorer

__all__: list[str] = ["FlakinessScorer", "cluster_failures"]
