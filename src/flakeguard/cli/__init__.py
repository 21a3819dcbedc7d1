# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""FlakeGuard command-line interface."""

from flakeguard.cli.commands import cli

__all__: list[str] = ["cli"]
