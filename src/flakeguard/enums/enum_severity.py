# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Severity / Priority Level Enumeration.

Shared four-level scale used for scorer severity and decision priority.
"""

from enum import Enum


class EnumSeverity(str, Enum):
    """Four-level ordinal scale (low < medium < high < critical)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


__all__ = ["EnumSeverity"]
