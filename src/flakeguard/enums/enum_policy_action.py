# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy Decision Action Enumeration."""

from enum import Enum


class EnumPolicyAction(str, Enum):
    """Action produced by policy evaluation for a single test.

    Attributes:
        NONE: No action; the reason explains why
        WARN: Surface a flakiness warning
        QUARANTINE: Recommend or enact quarantine
    """

    NONE = "none"
    WARN = "warn"
    QUARANTINE = "quarantine"


__all__ = ["EnumPolicyAction"]
