# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy file source backed by the GitHub contents API."""

from __future__ import annotations

import base64
import binascii
import logging
from uuid import UUID

import httpx

from flakeguard.errors import PolicyValidationError
from flakeguard.mixins import MixinGitHubHttpTransport
from flakeguard.models import ModelRepositoryRef

logger = logging.getLogger(__name__)

POLICY_FILE_PATH: str = ".flakeguard.yml"


class PolicySourceGitHub(MixinGitHubHttpTransport):
    """Reads ``.flakeguard.yml`` through ``GET /repos/{owner}/{repo}/contents``.

    A 404 means the repository has no policy file and yields None.
    """

    def __init__(
        self,
        token: str | None = None,
        api_url: str = "https://api.github.com",
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        file_path: str = POLICY_FILE_PATH,
    ) -> None:
        self._init_github_transport(
            target_name="github_contents",
            token=token,
            api_url=api_url,
            timeout_seconds=timeout_seconds,
            http_client=http_client,
        )
        self._file_path = file_path

    async def close(self) -> None:
        await self._close_http_client()

    async def fetch_policy_file(
        self,
        repository: ModelRepositoryRef,
        ref: str = "HEAD",
        correlation_id: UUID | None = None,
    ) -> str | None:
        client = await self._get_http_client()
        path = f"/repos/{repository.owner}/{repository.repo}/contents/{self._file_path}"
        try:
            response = await client.get(
                self._url(path),
                params={"ref": ref},
                headers=self._request_headers(),
            )
        except httpx.HTTPError as e:
            raise self._map_transport_error(e, "fetch_policy_file", correlation_id) from e

        if response.status_code == 404:
            logger.debug(
                "Policy file not present",
                extra={"repository": repository.full_name, "ref": ref},
            )
            return None
        if response.status_code >= 300:
            raise self._map_http_status_to_error(
                response, "fetch_policy_file", correlation_id
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise PolicyValidationError(
                f"Contents response for {self._file_path} is not JSON",
                errors=[f"(root): unparseable contents response ({type(e).__name__})"],
                repository=repository.full_name,
            ) from e
        if not isinstance(payload, dict) or payload.get("type") != "file":
            raise PolicyValidationError(
                f"Expected {self._file_path} to be a file",
                errors=[f"(root): {self._file_path} is not a file"],
                repository=repository.full_name,
            )
        content = payload.get("content")
        if not content:
            raise PolicyValidationError(
                f"{self._file_path} has no content",
                errors=[f"(root): {self._file_path} is empty"],
                repository=repository.full_name,
            )
        try:
            return base64.b64decode(str(content)).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise PolicyValidationError(
                f"{self._file_path} could not be decoded",
                errors=[f"(root): {type(e).__name__}"],
                repository=repository.full_name,
            ) from e


__all__: list[str] = ["POLICY_FILE_PATH", "PolicySourceGitHub"]
