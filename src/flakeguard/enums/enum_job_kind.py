# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Kind Enumeration."""

from enum import Enum


class EnumJobKind(str, Enum):
    """Kind of background work a job performs.

    Attributes:
        INGEST: Retrieve artifacts for a CI run and record occurrences
        ANALYZE: Score repository history and evaluate policy decisions
    """

    INGEST = "ingest"
    ANALYZE = "analyze"


__all__ = ["EnumJobKind"]
