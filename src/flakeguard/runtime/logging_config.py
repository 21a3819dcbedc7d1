# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Process-wide logging setup for the CLI and the worker."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
_VALID_LEVELS: frozenset[str] = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
)


def resolve_log_level(level: str | None = None) -> str:
    """Normalize a level name, falling back to INFO with a stderr warning.

    Reads ``FLAKEGUARD_LOG_LEVEL`` when ``level`` is None.
    """
    raw = level if level is not None else os.getenv("FLAKEGUARD_LOG_LEVEL", "INFO")
    log_level = raw.strip().upper()
    if log_level not in _VALID_LEVELS:
        print(
            f"Warning: Invalid FLAKEGUARD_LOG_LEVEL '{raw}', using INFO. "
            f"Valid levels: {', '.join(sorted(_VALID_LEVELS))}",
            file=sys.stderr,
        )
        log_level = "INFO"
    return log_level


def configure_logging(level: str | None = None) -> None:
    """Configure root logging.

    Example:
        >>> configure_logging()
        >>> logger.info("Job completed", extra={"duration_seconds": 1.234})
    """
    logging.basicConfig(
        level=getattr(logging, resolve_log_level(level), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


__all__: list[str] = ["LOG_DATE_FORMAT", "LOG_FORMAT", "configure_logging", "resolve_log_level"]
