# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Artifact retrieval, archive extraction and JUnit report parsing."""

from flakeguard.ingestion.archive_extractor import ArchiveExtractor, is_report_entry
from flakeguard.ingestion.artifact_filter import (
    matches_name,
    rejection_reason,
    select_artifacts,
)
from flakeguard.ingestion.artifact_retriever import ArtifactRetriever
from flakeguard.ingestion.artifact_source_github import ArtifactSourceGitHub
from flakeguard.ingestion.junit_parser import (
    JUnitStreamParser,
    parse_report_bytes,
    parse_report_stream,
)
from flakeguard.ingestion.protocol_artifact_source import ProtocolArtifactSource

__all__: list[str] = [
    "ArchiveExtractor",
    "ArtifactRetriever",
    "ArtifactSourceGitHub",
    "JUnitStreamParser",
    "ProtocolArtifactSource",
    "is_report_entry",
    "matches_name",
    "parse_report_bytes",
    "parse_report_stream",
    "rejection_reason",
    "select_artifacts",
]
