# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Infrastructure Transport Type Enumeration.

Defines the transport types used in error context and logging.
"""

from enum import Enum


class EnumInfraTransportType(str, Enum):
    """Transport/protocol layer an operation ran over.

    Attributes:
        HTTP: CI provider REST API
        DATABASE: PostgreSQL
        FILESYSTEM: Transient local storage for downloaded archives
        RUNTIME: In-process work (parsing, scoring, job execution)
    """

    HTTP = "http"
    DATABASE = "db"
    FILESYSTEM = "filesystem"
    RUNTIME = "runtime"


__all__ = ["EnumInfraTransportType"]
