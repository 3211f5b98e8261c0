"""Tests for the HTTP model service client."""

from __future__ import annotations

import json

import httpx
import pytest

from askdocs.core.config import Settings
from askdocs.core.errors import ConfigurationError, RateLimitedError, ServiceResponseError
from askdocs.llm.service import HttpModelService


def _service(handler, requests: list | None = None) -> HttpModelService:
    def recording_handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    return HttpModelService(
        base_url="https://models.test/v1/",
        api_key="secret",
        embedding_model="embed-model",
        chat_model="chat-model",
        transport=httpx.MockTransport(recording_handler),
    )


def test_missing_api_key_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        HttpModelService.from_settings(Settings(api_key="  "))


@pytest.mark.asyncio
async def test_embed_posts_batch_and_orders_by_index() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"data": [{"index": 1, "embedding": [0.0, 1.0]}, {"index": 0, "embedding": [1.0, 0.0]}]},
        )

    vectors = await _service(handler, seen).embed(["first", "second"])

    assert vectors == [[1.0, 0.0], [0.0, 1.0]]
    request = seen[0]
    assert request.url == "https://models.test/v1/embeddings"
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {
        "model": "embed-model",
        "input": ["first", "second"],
        "encoding_format": "float",
    }


@pytest.mark.asyncio
async def test_complete_returns_first_choice() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "Yes."}}]})

    answer = await _service(handler, seen).complete([{"role": "user", "content": "Hi"}], max_tokens=10)

    assert answer == "Yes."
    payload = json.loads(seen[0].content)
    assert payload["model"] == "chat-model"
    assert payload["max_tokens"] == 10


@pytest.mark.asyncio
async def test_429_raises_rate_limited() -> None:
    service = _service(lambda request: httpx.Response(429, text="too many requests"))
    with pytest.raises(RateLimitedError) as excinfo:
        await service.embed(["text"])
    assert excinfo.value.status == 429


@pytest.mark.asyncio
async def test_server_error_is_transient() -> None:
    service = _service(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(ServiceResponseError) as excinfo:
        await service.complete([{"role": "user", "content": "Hi"}])
    assert not isinstance(excinfo.value, RateLimitedError)
    assert excinfo.value.status == 503
    assert excinfo.value.is_transient


@pytest.mark.asyncio
async def test_client_error_is_not_transient() -> None:
    service = _service(lambda request: httpx.Response(401, text="invalid key"))
    with pytest.raises(ServiceResponseError) as excinfo:
        await service.embed(["text"])
    assert not excinfo.value.is_transient


@pytest.mark.asyncio
async def test_transport_error_has_no_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ServiceResponseError) as excinfo:
        await _service(handler).embed(["text"])
    assert excinfo.value.status is None
    assert excinfo.value.is_transient


@pytest.mark.asyncio
async def test_malformed_body_is_reported() -> None:
    service = _service(lambda request: httpx.Response(200, json={"unexpected": True}))
    with pytest.raises(ServiceResponseError):
        await service.complete([{"role": "user", "content": "Hi"}])


@pytest.mark.asyncio
async def test_null_completion_content_is_rejected() -> None:
    service = _service(
        lambda request: httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": None}}]})
    )
    with pytest.raises(ServiceResponseError) as excinfo:
        await service.complete([{"role": "user", "content": "Hi"}])
    assert not excinfo.value.is_transient
