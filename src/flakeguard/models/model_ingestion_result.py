# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Ingestion Result Model."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.models.model_job_error import ModelJobError


class ModelIngestionResult(BaseModel):
    """Aggregated counters of an ingestion job.

    ``combine`` sums counters and concatenates lists, so per-artifact results
    can be merged in any completion order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    artifacts_found: int = Field(default=0, ge=0)
    artifacts_processed: int = Field(default=0, ge=0)
    artifacts_failed: int = Field(default=0, ge=0)
    total_tests: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    errored: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    occurrences_written: int = Field(default=0, ge=0)
    duplicate_tests: int = Field(
        default=0,
        ge=0,
        description="Repeated test identities within one artifact, not counted in total_tests",
    )
    warnings: tuple[str, ...] = Field(default=())
    errors: tuple[ModelJobError, ...] = Field(default=())

    @classmethod
    def combine(cls, parts: Iterable[ModelIngestionResult]) -> ModelIngestionResult:
        totals: dict[str, int] = dict.fromkeys(_COUNTERS, 0)
        warnings: list[str] = []
        errors: list[ModelJobError] = []
        for part in parts:
            for name in _COUNTERS:
                totals[name] += getattr(part, name)
            warnings.extend(part.warnings)
            errors.extend(part.errors)
        return cls(
            **totals,
            warnings=tuple(sorted(warnings)),
            errors=tuple(sorted(errors, key=lambda e: (e.artifact_name or "", e.message))),
        )


_COUNTERS: tuple[str, ...] = (
    "artifacts_found",
    "artifacts_processed",
    "artifacts_failed",
    "total_tests",
    "passed",
    "failed",
    "errored",
    "skipped",
    "occurrences_written",
    "duplicate_tests",
)


__all__ = ["ModelIngestionResult"]
