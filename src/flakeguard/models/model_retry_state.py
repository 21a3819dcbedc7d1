# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Retry State Model.

Immutable exponential-backoff state. Each failed attempt produces a new state
through ``next_attempt``; callers loop while ``is_retriable()``.

Example:
    >>> state = ModelRetryState(max_attempts=3)
    >>> while state.is_retriable():
    ...     try:
    ...         return await operation()
    ...     except InfraTimeoutError as e:
    ...         state = state.next_attempt(error_message=str(e))
    ...         if state.is_retriable():
    ...             await asyncio.sleep(state.delay_seconds)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelRetryState(BaseModel):
    """Attempt counter with exponential backoff delay.

    Attributes:
        attempt: Failed attempts so far
        max_attempts: Total attempts allowed
        base_delay_seconds: Delay before the first retry
        backoff_multiplier: Growth factor per retry
        max_delay_seconds: Ceiling on any single delay
        delay_seconds: Delay to wait before the next attempt
        last_error: Message of the most recent failure
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    attempt: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=5.0, ge=0.0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    max_delay_seconds: float = Field(default=30.0, ge=0.0)
    delay_seconds: float = Field(default=0.0, ge=0.0)
    last_error: str | None = Field(default=None)

    def is_retriable(self) -> bool:
        return self.attempt < self.max_attempts

    def next_attempt(self, error_message: str | None = None) -> ModelRetryState:
        attempt = self.attempt + 1
        delay = self.base_delay_seconds * (self.backoff_multiplier ** (attempt - 1))
        return self.model_copy(
            update={
                "attempt": attempt,
                "delay_seconds": min(delay, self.max_delay_seconds),
                "last_error": error_message,
            }
        )


__all__ = ["ModelRetryState"]
