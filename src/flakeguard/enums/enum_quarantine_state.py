# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Quarantine Decision State Enumeration."""

from enum import Enum


class EnumQuarantineState(str, Enum):
    """State of a quarantine decision record.

    At most one ACTIVE decision may exist per test case.
    """

    ACTIVE = "active"
    EXPIRED = "expired"
    REVERTED = "reverted"


__all__ = ["EnumQuarantineState"]
