# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Database operation error handling context manager.

Transforms asyncpg exceptions raised inside the block into FlakeGuard
infrastructure errors carrying the operation context.

Exception Mapping:
    | asyncpg Exception         | FlakeGuard Error     | When                    |
    |---------------------------|----------------------|-------------------------|
    | QueryCanceledError        | InfraTimeoutError    | statement_timeout hit   |
    | PostgresConnectionError   | InfraConnectionError | Connection lost/failed  |
    | OSError                   | InfraConnectionError | Socket-level failure    |
    | PostgresError (other)     | RuntimeHostError     | Other database errors   |

Example:
    >>> async with db_operation_error_context(
    ...     operation="insert_occurrences",
    ...     target_name="fg_occurrences",
    ...     timeout_seconds=30.0,
    ... ) as (corr_id, context):
    ...     async with pool.acquire() as conn:
    ...         await conn.execute(sql, *args)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID, uuid4

import asyncpg

from flakeguard.enums import EnumInfraTransportType
from flakeguard.errors import (
    InfraConnectionError,
    InfraTimeoutError,
    ModelInfraErrorContext,
    RuntimeHostError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def db_operation_error_context(
    operation: str,
    target_name: str,
    correlation_id: UUID | None = None,
    timeout_seconds: float | None = None,
) -> AsyncIterator[tuple[UUID, ModelInfraErrorContext]]:
    """Wrap a database operation with consistent exception translation.

    Args:
        operation: Operation name used in messages and error context
        target_name: Table or resource name
        correlation_id: Correlation ID; generated when absent
        timeout_seconds: Command timeout reported on InfraTimeoutError

    Yields:
        (correlation_id, error_context) for use inside the block.

    Raises:
        InfraTimeoutError: On asyncpg.QueryCanceledError.
        InfraConnectionError: On connection loss.
        RuntimeHostError: On any other asyncpg.PostgresError.
    """
    op_correlation_id = correlation_id or uuid4()
    context = ModelInfraErrorContext(
        transport_type=EnumInfraTransportType.DATABASE,
        operation=operation,
        target_name=target_name,
        correlation_id=op_correlation_id,
    )

    try:
        yield (op_correlation_id, context)

    except asyncpg.QueryCanceledError as e:
        logger.warning(
            "Database operation timed out",
            extra={
                "operation": operation,
                "target_name": target_name,
                "correlation_id": str(op_correlation_id),
                "timeout_seconds": timeout_seconds,
            },
        )
        raise InfraTimeoutError(
            f"{operation} timed out",
            context=context,
            timeout_seconds=timeout_seconds,
        ) from e

    except (asyncpg.PostgresConnectionError, OSError) as e:
        logger.warning(
            "Database connection failed",
            extra={
                "operation": operation,
                "target_name": target_name,
                "correlation_id": str(op_correlation_id),
                "error_type": type(e).__name__,
            },
        )
        raise InfraConnectionError(
            f"Database connection failed during {operation}",
            context=context,
        ) from e

    except asyncpg.PostgresError as e:
        logger.warning(
            "Database error occurred",
            extra={
                "operation": operation,
                "target_name": target_name,
                "correlation_id": str(op_correlation_id),
                "error_type": type(e).__name__,
            },
        )
        raise RuntimeHostError(
            f"Database error during {operation}: {type(e).__name__}",
            context=context,
        ) from e


__all__: list[str] = ["db_operation_error_context"]
