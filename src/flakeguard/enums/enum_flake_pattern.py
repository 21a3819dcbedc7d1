# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Failure Pattern Classification Enumeration."""

from enum import Enum


class EnumFlakePattern(str, Enum):
    """Coarse failure pattern inferred from failure message keywords.

    Attributes:
        TIMING: Timeouts, races, waits and delays
        ENVIRONMENTAL: Network, connection and service availability issues
        INTERMITTENT: Failures with messages matching neither group
        UNKNOWN: No failure messages available
    """

    TIMING = "timing"
    ENVIRONMENTAL = "environmental"
    INTERMITTENT = "intermittent"
    UNKNOWN = "unknown"


__all__ = ["EnumFlakePattern"]
