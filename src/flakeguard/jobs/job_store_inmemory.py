# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""In-memory job store for tests and single-process runs."""

from __future__ import annotations

import asyncio
from uuid import UUID

from flakeguard.enums import EnumJobStatus
from flakeguard.errors import JobNotFoundError
from flakeguard.models import ModelJob


class InMemoryJobStore:
    """Dictionary-backed ProtocolJobStore."""

    def __init__(self) -> None:
        self._jobs: dict[UUID, ModelJob] = {}
        self._lock = asyncio.Lock()

    async def create_if_absent(self, job: ModelJob) -> tuple[ModelJob, bool]:
        async with self._lock:
            existing = self._jobs.get(job.id)
            if existing is not None and existing.status.is_active:
                return existing, False
            self._jobs[job.id] = job
            return job, True

    async def get(self, job_id: UUID) -> ModelJob | None:
        return self._jobs.get(job_id)

    async def save(self, job: ModelJob) -> None:
        async with self._lock:
            if job.id not in self._jobs:
                raise JobNotFoundError(job.id)
            self._jobs[job.id] = job

    async def list_by_status(self, status: EnumJobStatus) -> list[ModelJob]:
        return sorted(
            (j for j in self._jobs.values() if j.status is status),
            key=lambda j: j.created_at,
        )


__all__: list[str] = ["InMemoryJobStore"]
