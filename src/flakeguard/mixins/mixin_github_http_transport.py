# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""GitHub REST API HTTP Transport Mixin.

Shared by the artifact source and the policy file source. Provides:
    - Lazy httpx.AsyncClient management (create or inject)
    - Bearer token and GitHub API version headers
    - Explicit connect/read timeouts on every request
    - Mapping of httpx exceptions and non-2xx statuses to typed errors

Security:
    The token is only ever placed in the Authorization header and is never
    logged. Response bodies are sanitized via ``sanitize_error_string()``
    before being attached to exceptions.
"""

from __future__ import annotations

import asyncio
from json import JSONDecodeError
from uuid import UUID

import httpx

from flakeguard.enums import EnumInfraTransportType
from flakeguard.errors import (
    InfraAuthenticationError,
    InfraConnectionError,
    InfraTimeoutError,
    InfraUnavailableError,
    ModelInfraErrorContext,
    RuntimeHostError,
)
from flakeguard.utils import sanitize_error_string

_DEFAULT_API_URL: str = "https://api.github.com"
_DEFAULT_TIMEOUT_SECONDS: float = 30.0
_DEFAULT_CONNECT_TIMEOUT_SECONDS: float = 10.0
_API_VERSION: str = "2022-11-28"


class MixinGitHubHttpTransport:
    """HTTP plumbing for GitHub REST API clients.

    Subclasses call ``_init_github_transport`` from ``__init__`` and
    ``_close_http_client`` from their ``close``.
    """

    _github_target_name: str
    _api_url: str
    _token: str | None
    _timeout_seconds: float
    _http_client: httpx.AsyncClient | None
    _owns_http_client: bool
    _http_client_lock: asyncio.Lock

    def _init_github_transport(
        self,
        target_name: str,
        token: str | None = None,
        api_url: str = _DEFAULT_API_URL,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize transport settings.

        Args:
            target_name: Name used in error context and logs
            token: GitHub token; requests are unauthenticated when None
            api_url: REST API base URL (GitHub Enterprise supported)
            timeout_seconds: Read/write/pool timeout for every request
            http_client: Optional pre-configured client. When provided, the
                caller retains ownership and must close it.
        """
        self._github_target_name = target_name
        self._api_url = api_url.rstrip("/")
        self._token = token
        self._timeout_seconds = timeout_seconds
        self._http_client_lock = asyncio.Lock()
        if http_client is not None:
            self._http_client = http_client
            self._owns_http_client = False
        else:
            self._http_client = None
            self._owns_http_client = True

    def _build_error_context(
        self, operation: str, correlation_id: UUID | None
    ) -> ModelInfraErrorContext:
        return ModelInfraErrorContext(
            transport_type=EnumInfraTransportType.HTTP,
            operation=operation,
            target_name=self._github_target_name,
            correlation_id=correlation_id,
        )

    def _url(self, path: str) -> str:
        return f"{self._api_url}{path}"

    def _request_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Return the HTTP client, creating it lazily on first use."""
        if self._http_client is not None:
            return self._http_client

        async with self._http_client_lock:
            if self._http_client is not None:
                return self._http_client

            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    self._timeout_seconds,
                    connect=_DEFAULT_CONNECT_TIMEOUT_SECONDS,
                ),
                follow_redirects=True,
            )
            return self._http_client

    async def _close_http_client(self) -> None:
        """Close the HTTP client if this instance owns it."""
        async with self._http_client_lock:
            if self._owns_http_client and self._http_client is not None:
                await self._http_client.aclose()
                self._http_client = None

    def _map_transport_error(
        self,
        error: httpx.HTTPError,
        operation: str,
        correlation_id: UUID | None,
    ) -> RuntimeHostError:
        """Map an httpx exception to a typed infrastructure error (not raised)."""
        ctx = self._build_error_context(operation, correlation_id)
        if isinstance(error, httpx.TimeoutException):
            return InfraTimeoutError(
                f"Timeout during {operation} against {self._github_target_name}",
                context=ctx,
                timeout_seconds=self._timeout_seconds,
            )
        if isinstance(error, httpx.TransportError):
            return InfraConnectionError(
                f"Connection failed during {operation} against "
                f"{self._github_target_name}",
                context=ctx,
            )
        return RuntimeHostError(
            f"HTTP error during {operation}: {type(error).__name__}",
            context=ctx,
        )

    def _decode_json_object(
        self,
        response: httpx.Response,
        operation: str,
        correlation_id: UUID | None,
    ) -> dict[str, object]:
        """Parse a 2xx response body that must be a JSON object.

        Raises:
            RuntimeHostError: The body is not JSON or not an object (for
                example an HTML page from an intercepting proxy).
        """
        try:
            data = response.json()
        except (JSONDecodeError, ValueError) as exc:
            raise RuntimeHostError(
                f"Failed to parse JSON response from {self._github_target_name}: {exc}",
                context=self._build_error_context(operation, correlation_id),
                status_code=response.status_code,
                content_type=response.headers.get("content-type", ""),
                response_body=sanitize_error_string(response.text, max_length=200),
            ) from exc
        if not isinstance(data, dict):
            raise RuntimeHostError(
                f"Expected a JSON object from {self._github_target_name}, "
                f"got {type(data).__name__}",
                context=self._build_error_context(operation, correlation_id),
                status_code=response.status_code,
            )
        return data

    def _map_http_status_to_error(
        self,
        response: httpx.Response,
        operation: str,
        correlation_id: UUID | None,
    ) -> RuntimeHostError:
        """Map a non-2xx response to a typed infrastructure error (not raised).

        403 responses with an exhausted rate limit are treated as
        unavailability so that the job layer retries them.
        """
        ctx = self._build_error_context(operation, correlation_id)
        status = response.status_code
        try:
            body_snippet = sanitize_error_string(response.text, max_length=200)
        except httpx.ResponseNotRead:
            body_snippet = ""

        rate_limited = status == 429 or (
            status == 403 and response.headers.get("x-ratelimit-remaining") == "0"
        )
        if rate_limited:
            return InfraUnavailableError(
                f"Rate limited ({status}) by {self._github_target_name}",
                context=ctx,
                status_code=status,
            )
        if status in (401, 403):
            return InfraAuthenticationError(
                f"Authentication failed ({status}) from {self._github_target_name}",
                context=ctx,
                status_code=status,
            )
        if status >= 500:
            return InfraUnavailableError(
                f"Server error ({status}) from {self._github_target_name}",
                context=ctx,
                status_code=status,
                response_body=body_snippet,
            )
        return RuntimeHostError(
            f"Unexpected status {status} from {self._github_target_name} "
            f"during {operation}",
            context=ctx,
            status_code=status,
            response_body=body_snippet,
        )


__all__: list[str] = ["MixinGitHubHttpTransport"]
