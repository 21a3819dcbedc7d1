# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Artifact selection rules.

An artifact is a download candidate when it is not expired (unless the filter
includes expired artifacts), its size is below the configured ceiling and its
name matches at least one pattern. Patterns with glob metacharacters are
matched with ``fnmatch`` against the lowercased name; other patterns are
case-insensitive substrings.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from fnmatch import fnmatchcase

from flakeguard.models import ModelArtifact, ModelArtifactFilter

logger = logging.getLogger(__name__)

_GLOB_CHARS: frozenset[str] = frozenset("*?[")


def matches_name(name: str, patterns: Iterable[str]) -> bool:
    lowered = name.lower()
    for pattern in patterns:
        needle = pattern.lower()
        if _GLOB_CHARS.intersection(needle):
            if fnmatchcase(lowered, needle):
                return True
        elif needle in lowered:
            return True
    return False


def rejection_reason(artifact: ModelArtifact, artifact_filter: ModelArtifactFilter) -> str | None:
    """Why the artifact is not a candidate, or None when it is."""
    if artifact.expired and not artifact_filter.include_expired:
        return "expired"
    if artifact.size_bytes >= artifact_filter.max_size_bytes:
        return f"size {artifact.size_bytes} exceeds {artifact_filter.max_size_bytes} bytes"
    if not matches_name(artifact.name, artifact_filter.name_patterns):
        return "name does not match"
    return None


def select_artifacts(
    artifacts: Iterable[ModelArtifact],
    artifact_filter: ModelArtifactFilter | None = None,
) -> list[ModelArtifact]:
    """Return the artifacts worth downloading, in listing order."""
    effective = artifact_filter or ModelArtifactFilter()
    selected: list[ModelArtifact] = []
    for artifact in artifacts:
        reason = rejection_reason(artifact, effective)
        if reason is None:
            selected.append(artifact)
        else:
            logger.debug(
                "Artifact filtered out",
                extra={"artifact_name": artifact.name, "reason": reason},
            )
    return selected


__all__: list[str] = ["matches_name", "rejection_reason", "select_artifacts"]
