# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Durable job store protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from flakeguard.enums import EnumJobStatus
from flakeguard.models import ModelJob


@runtime_checkable
class ProtocolJobStore(Protocol):
    """Persistence for job snapshots.

    ``create_if_absent`` is the idempotency point: it must atomically return
    the existing job when one with the same id is still active, and replace a
    terminal job (a re-triggered run) otherwise.
    """

    async def create_if_absent(self, job: ModelJob) -> tuple[ModelJob, bool]:
        """Store ``job`` unless an active job with its id exists.

        Returns:
            (stored or existing job, True when ``job`` was stored)
        """
        ...

    async def get(self, job_id: UUID) -> ModelJob | None: ...

    async def save(self, job: ModelJob) -> None:
        """Overwrite the snapshot of an existing job."""
        ...

    async def list_by_status(self, status: EnumJobStatus) -> list[ModelJob]:
        """Jobs in ``status``, oldest first."""
        ...


__all__: list[str] = ["ProtocolJobStore"]
