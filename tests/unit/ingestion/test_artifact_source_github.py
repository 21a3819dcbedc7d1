# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for ArtifactSourceGitHub using httpx.MockTransport."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from flakeguard.errors import (
    InfraAuthenticationError,
    InfraConnectionError,
    InfraTimeoutError,
    InfraUnavailableError,
    RuntimeHostError,
)
from flakeguard.ingestion import ArtifactSourceGitHub
from flakeguard.models import ModelRepositoryRef

Handler = Callable[[httpx.Request], httpx.Response]


def _source(handler: Handler, token: str | None = "ghs_test") -> ArtifactSourceGitHub:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ArtifactSourceGitHub(token=token, http_client=client)


def _artifact_json(id_: int, name: str, expired: bool = False) -> dict[str, object]:
    return {
        "id": id_,
        "name": name,
        "size_in_bytes": 2048,
        "expired": expired,
        "created_at": "2025-06-01T10:00:00Z",
    }


class TestListArtifacts:
    @pytest.mark.asyncio
    async def test_lists_artifacts_with_auth_headers(
        self, repository: ModelRepositoryRef
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"total_count": 2, "artifacts": [_artifact_json(1, "junit"), _artifact_json(2, "logs", True)]},
            )

        artifacts = await _source(handler).list_artifacts(repository, 42)

        assert [(a.id, a.name, a.expired) for a in artifacts] == [
            (1, "junit", False),
            (2, "logs", True),
        ]
        assert artifacts[0].created_at is not None
        request = seen[0]
        assert request.url.path == "/repos/acme/widgets/actions/runs/42/artifacts"
        assert request.headers["Authorization"] == "Bearer ghs_test"
        assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"

    @pytest.mark.asyncio
    async def test_follows_pagination(self, repository: ModelRepositoryRef) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params["page"])
            if page == 1:
                items = [_artifact_json(i, f"junit-{i}") for i in range(100)]
            else:
                items = [_artifact_json(1000, "junit-last")]
            return httpx.Response(200, json={"artifacts": items})

        artifacts = await _source(handler).list_artifacts(repository, 7)

        assert len(artifacts) == 101
        assert artifacts[-1].name == "junit-last"

    @pytest.mark.asyncio
    async def test_unknown_run_yields_empty_list(self, repository: ModelRepositoryRef) -> None:
        artifacts = await _source(lambda r: httpx.Response(404)).list_artifacts(repository, 9)

        assert artifacts == []

    @pytest.mark.asyncio
    async def test_unauthenticated_requests_omit_authorization(
        self, repository: ModelRepositoryRef
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"artifacts": []})

        await _source(handler, token=None).list_artifacts(repository, 1)

        assert "Authorization" not in seen[0].headers


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("response", "error_type"),
        [
            (httpx.Response(401), InfraAuthenticationError),
            (httpx.Response(503, text="maintenance"), InfraUnavailableError),
            (httpx.Response(429), InfraUnavailableError),
            (
                httpx.Response(403, headers={"x-ratelimit-remaining": "0"}),
                InfraUnavailableError,
            ),
        ],
    )
    async def test_status_codes_map_to_typed_errors(
        self,
        repository: ModelRepositoryRef,
        response: httpx.Response,
        error_type: type[Exception],
    ) -> None:
        with pytest.raises(error_type):
            await _source(lambda r: response).list_artifacts(repository, 1)

    @pytest.mark.asyncio
    async def test_transport_errors_are_retryable(self, repository: ModelRepositoryRef) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(InfraConnectionError) as exc_info:
            await _source(refuse).list_artifacts(repository, 1)

        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_timeouts_map_to_infra_timeout(self, repository: ModelRepositoryRef) -> None:
        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(InfraTimeoutError):
            await _source(slow).list_artifacts(repository, 1)

    @pytest.mark.asyncio
    async def test_non_json_body_maps_to_runtime_error(
        self, repository: ModelRepositoryRef
    ) -> None:
        source = _source(
            lambda r: httpx.Response(
                200, text="<html>proxy login</html>", headers={"content-type": "text/html"}
            )
        )

        with pytest.raises(RuntimeHostError) as exc_info:
            await source.list_artifacts(repository, 1)

        assert exc_info.value.context["operation"] == "list_artifacts"
        assert exc_info.value.context["status_code"] == 200
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_non_object_json_body_maps_to_runtime_error(
        self, repository: ModelRepositoryRef
    ) -> None:
        with pytest.raises(RuntimeHostError):
            await _source(lambda r: httpx.Response(200, json=[1, 2])).list_artifacts(
                repository, 1
            )


class TestStreamArtifact:
    @pytest.mark.asyncio
    async def test_streams_after_redirect(self, repository: ModelRepositoryRef) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.github.com":
                return httpx.Response(
                    302, headers={"Location": "https://blob.example.com/a.zip"}
                )
            return httpx.Response(200, content=b"PK\x03\x04payload")

        source = _source(handler)
        chunks = [c async for c in source.stream_artifact(repository, 5)]

        assert b"".join(chunks) == b"PK\x03\x04payload"

    @pytest.mark.asyncio
    async def test_expired_artifact_yields_nothing(self, repository: ModelRepositoryRef) -> None:
        source = _source(lambda r: httpx.Response(410))

        assert [c async for c in source.stream_artifact(repository, 5)] == []

    @pytest.mark.asyncio
    async def test_server_error_raises(self, repository: ModelRepositoryRef) -> None:
        source = _source(lambda r: httpx.Response(502, text="bad gateway"))

        with pytest.raises(InfraUnavailableError):
            _ = [c async for c in source.stream_artifact(repository, 5)]

    @pytest.mark.asyncio
    async def test_close_keeps_injected_client_open(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        source = ArtifactSourceGitHub(http_client=client)

        await source.close()

        assert not client.is_closed
        await client.aclose()
