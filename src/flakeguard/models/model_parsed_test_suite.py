# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Parsed Test Suite Model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumTestStatus
from flakeguard.models.model_parsed_test_case import ModelParsedTestCase


class ModelParsedTestSuite(BaseModel):
    """One <testsuite> element with its test cases.

    The declared counters (tests, failures, errors, skipped) are copied from
    the report attributes and may disagree with the parsed test cases; the
    ``*_count`` properties are derived from the cases themselves.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="", description="Suite name attribute")
    source_file: str = Field(default="", description="Archive entry the suite came from")
    tests: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    time_seconds: float = Field(default=0.0, ge=0.0)
    timestamp: str | None = Field(default=None)
    hostname: str | None = Field(default=None)
    file: str | None = Field(default=None)
    properties: dict[str, str] = Field(default_factory=dict)
    test_cases: tuple[ModelParsedTestCase, ...] = Field(default=())

    def count(self, status: EnumTestStatus) -> int:
        return sum(1 for case in self.test_cases if case.status is status)

    @property
    def total_count(self) -> int:
        return len(self.test_cases)


__all__ = ["ModelParsedTestSuite"]
