# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Prometheus metrics."""

from flakeguard.observability.prometheus_metrics import FlakeGuardMetrics

__all__: list[str] = ["FlakeGuardMetrics"]
