# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Flakiness Recommendation Enumeration."""

from enum import Enum


class EnumFlakeRecommendation(str, Enum):
    """Recommended action attached to a computed flake score."""

    STABLE = "stable"
    MONITOR = "monitor"
    QUARANTINE = "quarantine"


__all__ = ["EnumFlakeRecommendation"]
