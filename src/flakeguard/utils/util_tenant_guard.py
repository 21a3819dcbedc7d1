# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Tenant context guard.

Every data-access method takes the tenant (organization) id explicitly;
calling one without it is a programming error.
"""

from __future__ import annotations

from flakeguard.enums import EnumInfraTransportType
from flakeguard.errors import InvariantViolationError, ModelInfraErrorContext


def require_tenant(org_id: str | None, operation: str) -> str:
    """Return ``org_id`` or raise InvariantViolationError when it is blank."""
    if org_id is None or not org_id.strip():
        raise InvariantViolationError(
            f"{operation} called without a tenant context",
            context=ModelInfraErrorContext(
                transport_type=EnumInfraTransportType.RUNTIME,
                operation=operation,
            ),
        )
    return org_id


__all__: list[str] = ["require_tenant"]
