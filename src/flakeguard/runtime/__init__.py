# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Runtime configuration, logging setup and service assembly."""

from flakeguard.runtime.logging_config import configure_logging, resolve_log_level
from flakeguard.runtime.model_runtime_config import ModelRuntimeConfig
from flakeguard.runtime.service_runtime import FlakeGuardRuntime, run_worker

__all__: list[str] = [
    "FlakeGuardRuntime",
    "ModelRuntimeConfig",
    "configure_logging",
    "resolve_log_level",
    "run_worker",
]
