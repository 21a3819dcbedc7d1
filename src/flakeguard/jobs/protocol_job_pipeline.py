# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job pipeline protocol."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from flakeguard.models import ModelJob, ModelJobProgress

ProgressCallback = Callable[[ModelJobProgress], Awaitable[None]]


@runtime_checkable
class ProtocolJobPipeline(Protocol):
    """Executes one attempt of a job.

    Implementations report progress through ``progress`` and return the
    result model stored on the job. Transient failures are raised as
    retryable FlakeGuardError subclasses; per-artifact problems are reported
    inside the result instead.
    """

    async def run(self, job: ModelJob, progress: ProgressCallback) -> BaseModel: ...


__all__: list[str] = ["ProgressCallback", "ProtocolJobPipeline"]
