# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""GitHub Actions artifact source.

Lists workflow run artifacts through the REST API (paginated) and streams
artifact zip archives without buffering them in memory.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import datetime
from uuid import UUID

import httpx

from flakeguard.mixins import MixinGitHubHttpTransport
from flakeguard.models import ModelArtifact, ModelRepositoryRef

logger = logging.getLogger(__name__)

_PER_PAGE: int = 100
_MAX_PAGES: int = 50
_STREAM_CHUNK_SIZE: int = 64 * 1024
_GONE_STATUSES: frozenset[int] = frozenset({404, 410})


class ArtifactSourceGitHub(MixinGitHubHttpTransport):
    """ProtocolArtifactSource backed by the GitHub Actions REST API.

    Example:
        >>> source = ArtifactSourceGitHub(token=os.environ["FLAKEGUARD_GITHUB_TOKEN"])
        >>> artifacts = await source.list_artifacts(repo, run_id=123)
        >>> async for chunk in source.stream_artifact(repo, artifacts[0].id):
        ...     handle.write(chunk)
        >>> await source.close()
    """

    def __init__(
        self,
        token: str | None = None,
        api_url: str = "https://api.github.com",
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._init_github_transport(
            target_name="github_actions_artifacts",
            token=token,
            api_url=api_url,
            timeout_seconds=timeout_seconds,
            http_client=http_client,
        )

    async def close(self) -> None:
        await self._close_http_client()

    async def list_artifacts(
        self,
        repository: ModelRepositoryRef,
        run_id: int,
        correlation_id: UUID | None = None,
    ) -> list[ModelArtifact]:
        client = await self._get_http_client()
        path = f"/repos/{repository.owner}/{repository.repo}/actions/runs/{run_id}/artifacts"
        artifacts: list[ModelArtifact] = []

        for page in range(1, _MAX_PAGES + 1):
            try:
                response = await client.get(
                    self._url(path),
                    params={"per_page": _PER_PAGE, "page": page},
                    headers=self._request_headers(),
                )
            except httpx.HTTPError as e:
                raise self._map_transport_error(e, "list_artifacts", correlation_id) from e

            if response.status_code in _GONE_STATUSES:
                logger.info(
                    "Workflow run not found, no artifacts",
                    extra={
                        "repository": repository.full_name,
                        "run_id": run_id,
                        "correlation_id": str(correlation_id) if correlation_id else None,
                    },
                )
                return artifacts
            if response.status_code >= 300:
                raise self._map_http_status_to_error(response, "list_artifacts", correlation_id)

            payload = self._decode_json_object(response, "list_artifacts", correlation_id)
            page_items = payload.get("artifacts", [])
            if not isinstance(page_items, list):
                page_items = []
            artifacts.extend(_to_artifact(item) for item in page_items)
            if len(page_items) < _PER_PAGE:
                break

        return artifacts

    async def stream_artifact(
        self,
        repository: ModelRepositoryRef,
        artifact_id: int,
        correlation_id: UUID | None = None,
    ) -> AsyncIterator[bytes]:
        client = await self._get_http_client()
        path = f"/repos/{repository.owner}/{repository.repo}/actions/artifacts/{artifact_id}/zip"
        try:
            async with client.stream(
                "GET",
                self._url(path),
                headers=self._request_headers(),
                follow_redirects=True,
            ) as response:
                if response.status_code in _GONE_STATUSES:
                    logger.info(
                        "Artifact missing or expired",
                        extra={
                            "repository": repository.full_name,
                            "artifact_id": artifact_id,
                            "status_code": response.status_code,
                        },
                    )
                    return
                if response.status_code >= 300:
                    await response.aread()
                    raise self._map_http_status_to_error(
                        response, "download_artifact", correlation_id
                    )
                async for chunk in response.aiter_bytes(_STREAM_CHUNK_SIZE):
                    yield chunk
        except httpx.HTTPError as e:
            raise self._map_transport_error(e, "download_artifact", correlation_id) from e


def _to_artifact(item: dict[str, object]) -> ModelArtifact:
    created_raw = item.get("created_at")
    created_at = None
    if isinstance(created_raw, str) and created_raw:
        try:
            created_at = datetime.fromisoformat(created_raw.replace("Z", "+00:00"))
        except ValueError:
            created_at = None
    size = item.get("size_in_bytes", 0)
    return ModelArtifact(
        id=int(str(item["id"])),
        name=str(item.get("name", "")),
        size_bytes=size if isinstance(size, int) and size >= 0 else 0,
        expired=bool(item.get("expired", False)),
        created_at=created_at,
    )


__all__: list[str] = ["ArtifactSourceGitHub"]
