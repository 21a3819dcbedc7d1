# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Runtime configuration model.

Environment Variables:
    FLAKEGUARD_DATABASE_DSN: PostgreSQL DSN; in-memory stores when unset
    FLAKEGUARD_GITHUB_TOKEN: Token for the artifact and contents APIs
    FLAKEGUARD_GITHUB_API_URL: REST API base URL (default https://api.github.com)
    FLAKEGUARD_WORKER_CONCURRENCY: Job workers (default 3)
    FLAKEGUARD_ARTIFACT_CONCURRENCY: Artifacts processed in parallel per job (default 3)
    FLAKEGUARD_JOB_TIMEOUT_SECONDS: Budget of one job attempt (default 300)
    FLAKEGUARD_MAX_JOB_ATTEMPTS: Attempts per job (default 3)
    FLAKEGUARD_POLICY_CACHE_TTL_SECONDS: Policy cache TTL (default 300)
    FLAKEGUARD_HTTP_TIMEOUT_SECONDS: Read timeout of GitHub requests (default 30)
    FLAKEGUARD_LOG_LEVEL: Logging level (default INFO)
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from flakeguard.errors import ProtocolConfigurationError

_ENV_PREFIX = "FLAKEGUARD_"

_ENV_FIELDS: dict[str, str] = {
    "database_dsn": "FLAKEGUARD_DATABASE_DSN",
    "github_token": "FLAKEGUARD_GITHUB_TOKEN",
    "github_api_url": "FLAKEGUARD_GITHUB_API_URL",
    "worker_concurrency": "FLAKEGUARD_WORKER_CONCURRENCY",
    "artifact_concurrency": "FLAKEGUARD_ARTIFACT_CONCURRENCY",
    "job_timeout_seconds": "FLAKEGUARD_JOB_TIMEOUT_SECONDS",
    "max_job_attempts": "FLAKEGUARD_MAX_JOB_ATTEMPTS",
    "policy_cache_ttl_seconds": "FLAKEGUARD_POLICY_CACHE_TTL_SECONDS",
    "http_timeout_seconds": "FLAKEGUARD_HTTP_TIMEOUT_SECONDS",
    "log_level": "FLAKEGUARD_LOG_LEVEL",
}


class ModelRuntimeConfig(BaseModel):
    """Settings used to assemble a FlakeGuardRuntime.

    Security:
        ``database_dsn`` and ``github_token`` are excluded from repr.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    database_dsn: str | None = Field(default=None, repr=False)
    github_token: str | None = Field(default=None, repr=False)
    github_api_url: str = Field(default="https://api.github.com", min_length=1)
    worker_concurrency: int = Field(default=3, ge=1, le=64)
    artifact_concurrency: int = Field(default=3, ge=1, le=32)
    job_timeout_seconds: float = Field(default=300.0, gt=0.0)
    max_job_attempts: int = Field(default=3, ge=1, le=10)
    policy_cache_ttl_seconds: float = Field(default=300.0, gt=0.0)
    http_timeout_seconds: float = Field(default=30.0, gt=0.0)
    log_level: str = Field(default="INFO")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ModelRuntimeConfig:
        """Build the configuration from ``FLAKEGUARD_*`` environment variables.

        Empty values count as unset.

        Raises:
            ProtocolConfigurationError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        values = {
            field: env[name]
            for field, name in _ENV_FIELDS.items()
            if env.get(name, "").strip()
        }
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            problems = [
                f"{_ENV_FIELDS.get(str(err['loc'][0]), _ENV_PREFIX)}: {err['msg']}"
                for err in e.errors()
                if err["loc"]
            ]
            raise ProtocolConfigurationError(
                "Invalid runtime configuration: " + "; ".join(problems),
                invalid_variables=problems,
            ) from e


__all__: list[str] = ["ModelRuntimeConfig"]
