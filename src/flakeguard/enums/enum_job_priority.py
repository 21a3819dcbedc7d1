# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Priority Enumeration."""

from enum import Enum


class EnumJobPriority(str, Enum):
    """Submission priority. Higher ranks are dequeued first."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS: dict[EnumJobPriority, int] = {
    EnumJobPriority.LOW: 0,
    EnumJobPriority.NORMAL: 1,
    EnumJobPriority.HIGH: 2,
    EnumJobPriority.CRITICAL: 3,
}


__all__ = ["EnumJobPriority"]
