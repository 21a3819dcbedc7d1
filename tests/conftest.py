# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Global test fixtures: repository coordinates and occurrence builders."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from flakeguard.enums import EnumTestStatus
from flakeguard.models import ModelOccurrence, ModelRepositoryRef

FIXED_NOW = datetime(2025, 6, 2, 12, 0, tzinfo=UTC)

OccurrenceFactory = Callable[..., list[ModelOccurrence]]


def build_history(
    statuses: Sequence[EnumTestStatus | str],
    test_id: UUID | None = None,
    now: datetime = FIXED_NOW,
    spacing: timedelta = timedelta(hours=1),
    branches: Sequence[str | None] | None = None,
    messages: Sequence[str | None] | None = None,
) -> list[ModelOccurrence]:
    """Occurrences oldest-first, the last one ``spacing`` before ``now``.

    ``statuses`` accepts enum members or the short codes P/F/E/S.
    """
    codes = {
        "P": EnumTestStatus.PASSED,
        "F": EnumTestStatus.FAILED,
        "E": EnumTestStatus.ERROR,
        "S": EnumTestStatus.SKIPPED,
    }
    test_id = test_id or uuid4()
    count = len(statuses)
    occurrences: list[ModelOccurrence] = []
    for index, raw in enumerate(statuses):
        status = codes[raw] if isinstance(raw, str) else raw
        message = messages[index] if messages is not None else None
        if message is None and status.is_failure:
            message = "AssertionError: expected 1 but got 2"
        occurrences.append(
            ModelOccurrence(
                id=uuid4(),
                test_id=test_id,
                run_id=1000 + index,
                status=status,
                duration_ms=120,
                created_at=now - spacing * (count - index),
                branch=branches[index] if branches is not None else "main",
                failure_message=message if status.is_failure else None,
                failure_signature=(
                    f"sig-{message}" if status.is_failure and message else None
                ),
            )
        )
    return occurrences


@pytest.fixture
def repository() -> ModelRepositoryRef:
    return ModelRepositoryRef(org_id="org-acme", owner="acme", repo="widgets")


@pytest.fixture
def history_factory() -> OccurrenceFactory:
    return build_history


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW
