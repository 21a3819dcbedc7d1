# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job Lifecycle Status Enumeration."""

from enum import Enum


class EnumJobStatus(str, Enum):
    """Lifecycle states of an ingestion or analysis job.

    queued -> processing -> {completed, failed, cancelled}. A failed attempt
    that is still retryable moves back to queued.
    """

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """True while the job still occupies its run slot."""
        return self in (EnumJobStatus.QUEUED, EnumJobStatus.PROCESSING)

    @property
    def is_terminal(self) -> bool:
        return not self.is_active


__all__ = ["EnumJobStatus"]
