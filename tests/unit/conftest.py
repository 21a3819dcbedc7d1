# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Shared pytest configuration for unit tests.

Every test collected under tests/unit/ receives the ``unit`` marker, so the
suite can be filtered with ``pytest -m unit`` or ``pytest -m "not unit"``.
A module-level ``pytestmark`` in a conftest does not propagate to sibling
files, hence the collection hook.
"""

import pytest


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Add the unit marker to tests collected from tests/unit."""
    unit_marker = pytest.mark.unit
    for item in items:
        if "tests/unit" in str(item.fspath) and not any(
            marker.name == "unit" for marker in item.iter_markers()
        ):
            item.add_marker(unit_marker)
