# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Report Parse Result Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.models.model_parsed_test_suite import ModelParsedTestSuite


class ModelReportParseResult(BaseModel):
    """Outcome of extracting and parsing one archive.

    Attributes:
        suites: Suites parsed from every well-formed report entry
        files_parsed: Number of report entries parsed successfully
        files_skipped: Number of report entries skipped (malformed or oversized)
        warnings: One human-readable message per skipped entry
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    suites: tuple[ModelParsedTestSuite, ...] = Field(default=())
    files_parsed: int = Field(default=0, ge=0)
    files_skipped: int = Field(default=0, ge=0)
    warnings: tuple[str, ...] = Field(default=())

    @property
    def total_tests(self) -> int:
        return sum(suite.total_count for suite in self.suites)


__all__ = ["ModelReportParseResult"]
