# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy Configuration Source Enumeration."""

from enum import Enum


class EnumPolicySource(str, Enum):
    """Where a cached policy configuration came from.

    Attributes:
        REPOSITORY: Loaded and validated from the repository policy file
        DEFAULTS: Environment-derived defaults (file missing or invalid)
    """

    REPOSITORY = "repository"
    DEFAULTS = "defaults"


__all__ = ["EnumPolicySource"]
