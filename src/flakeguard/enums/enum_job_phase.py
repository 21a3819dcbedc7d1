# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Progress Phase Enumeration."""

from enum import Enum


class EnumJobPhase(str, Enum):
    """Coarse progress phase reported while a job runs."""

    DISCOVERING = "discovering"
    DOWNLOADING = "downloading"
    PROCESSING = "processing"
    STORING = "storing"
    ANALYZING = "analyzing"
    COMPLETE = "complete"


__all__ = ["EnumJobPhase"]
