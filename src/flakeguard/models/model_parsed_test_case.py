# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Parsed Test Case Model.

Normalized representation of one <testcase> element.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from flakeguard.enums import EnumTestStatus


class ModelParsedTestCase(BaseModel):
    """One test case as read from a JUnit-style report.

    Attributes:
        name: Test name attribute
        class_name: classname (or class) attribute, empty when absent
        status: Outcome after applying marker precedence
        time_seconds: Duration in the report's native unit (seconds)
        file: Source file attribute, when the reporter provides one
        failure_message: message attribute of the failure/error element
        failure_type: type attribute of the failure/error element
        stack_trace: Body text of the failure/error element
        system_out: Captured stdout, truncated
        system_err: Captured stderr, truncated
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Test name")
    class_name: str = Field(default="", description="Class or module name")
    status: EnumTestStatus = Field(default=EnumTestStatus.PASSED)
    time_seconds: float = Field(default=0.0, ge=0.0)
    file: str | None = Field(default=None)
    failure_message: str | None = Field(default=None)
    failure_type: str | None = Field(default=None)
    stack_trace: str | None = Field(default=None)
    system_out: str | None = Field(default=None)
    system_err: str | None = Field(default=None)

    @property
    def duration_ms(self) -> int:
        """Duration normalized to whole milliseconds."""
        return round(self.time_seconds * 1000)


__all__ = ["ModelParsedTestCase"]
