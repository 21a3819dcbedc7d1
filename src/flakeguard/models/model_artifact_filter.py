# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Artifact Filter Configuration Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_NAME_PATTERNS: tuple[str, ...] = (
    "test-results",
    "junit",
    "test-report",
    "surefire-reports",
)
DEFAULT_MAX_SIZE_BYTES: int = 100 * 1024 * 1024


class ModelArtifactFilter(BaseModel):
    """Selection rules for artifacts worth downloading.

    A pattern containing glob metacharacters (``*?[``) is matched as a
    case-insensitive glob against the whole name; any other pattern is a
    case-insensitive substring.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name_patterns: tuple[str, ...] = Field(
        default=DEFAULT_NAME_PATTERNS,
        min_length=1,
        description="Substring or glob patterns an artifact name must match",
    )
    max_size_bytes: int = Field(
        default=DEFAULT_MAX_SIZE_BYTES,
        gt=0,
        description="Artifacts at or above this size are skipped",
    )
    include_expired: bool = Field(default=False)


__all__ = ["DEFAULT_MAX_SIZE_BYTES", "DEFAULT_NAME_PATTERNS", "ModelArtifactFilter"]
