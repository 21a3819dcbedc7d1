# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Test Execution Status Enumeration.

Outcome of a single test case execution as reported by a JUnit-style report.
"""

from enum import Enum


class EnumTestStatus(str, Enum):
    """Outcome of one test execution.

    Precedence when a testcase carries several markers is
    ERROR > FAILED > SKIPPED > PASSED (see precedence).

    Attributes:
        PASSED: No failure, error or skip marker present
        FAILED: An assertion failure was reported
        ERROR: An unexpected error was reported
        SKIPPED: The test was skipped
    """

    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"
    SKIPPED = "skipped"

    @property
    def precedence(self) -> int:
        """Rank used to merge multiple markers on one testcase."""
        return _PRECEDENCE[self]

    @property
    def is_failure(self) -> bool:
        """True for FAILED and ERROR."""
        return self in (EnumTestStatus.FAILED, EnumTestStatus.ERROR)


_PRECEDENCE: dict[EnumTestStatus, int] = {
    EnumTestStatus.PASSED: 0,
    EnumTestStatus.SKIPPED: 1,
    EnumTestStatus.FAILED: 2,
    EnumTestStatus.ERROR: 3,
}


__all__ = ["EnumTestStatus"]
