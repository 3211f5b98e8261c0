"""Tests for the batching embedding client."""

from __future__ import annotations

import pytest

from askdocs.core.errors import (
    DimensionMismatchError,
    EmbeddingServiceError,
    RateLimitedError,
    ServiceResponseError,
)
from askdocs.ingest.embeddings import EmbeddingClient, EmbeddingConfig

from conftest import TEST_DIM, fake_vector


@pytest.mark.asyncio
async def test_empty_input_makes_no_calls(fake_service, sleeps) -> None:
    client = EmbeddingClient(fake_service, EmbeddingConfig(dim=TEST_DIM), sleep=sleeps)
    assert await client.embed_batch([]) == []
    assert fake_service.embed_calls == []
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_batches_are_sequential_and_ordered(fake_service, sleeps) -> None:
    texts = [f"text number {i}" for i in range(25)]
    client = EmbeddingClient(fake_service, EmbeddingConfig(dim=TEST_DIM, batch_size=10, batch_delay=0.5), sleep=sleeps)

    vectors = await client.embed_batch(texts)

    assert [len(call) for call in fake_service.embed_calls] == [10, 10, 5]
    assert vectors == [fake_vector(text) for text in texts]
    # pause between batches, none after the last
    assert sleeps.delays == [0.5, 0.5]


@pytest.mark.asyncio
async def test_rate_limited_batch_is_retried(fake_service, sleeps) -> None:
    fake_service.embed_errors = [RateLimitedError("slow down"), RateLimitedError("slow down")]
    client = EmbeddingClient(fake_service, EmbeddingConfig(dim=TEST_DIM, retry_delay=2.0), sleep=sleeps)

    vectors = await client.embed_batch(["alpha", "beta"])

    assert len(vectors) == 2
    assert fake_service.embed_calls == [["alpha", "beta"]] * 3
    assert sleeps.delays == [2.0, 2.0]


@pytest.mark.asyncio
async def test_service_error_aborts_without_retry(fake_service, sleeps) -> None:
    fake_service.embed_errors = [ServiceResponseError(500, "upstream exploded")]
    client = EmbeddingClient(fake_service, EmbeddingConfig(dim=TEST_DIM), sleep=sleeps)

    with pytest.raises(EmbeddingServiceError) as excinfo:
        await client.embed_batch(["alpha"])

    assert excinfo.value.status == 500
    assert excinfo.value.body == "upstream exploded"
    assert len(fake_service.embed_calls) == 1
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_transport_failure_has_no_status(fake_service, sleeps) -> None:
    fake_service.embed_errors = [ServiceResponseError(None, "connection refused")]
    client = EmbeddingClient(fake_service, EmbeddingConfig(dim=TEST_DIM), sleep=sleeps)

    with pytest.raises(EmbeddingServiceError) as excinfo:
        await client.embed_batch(["alpha"])
    assert excinfo.value.status is None


@pytest.mark.asyncio
async def test_wrong_dimension_is_rejected(fake_service, sleeps) -> None:
    fake_service.dim = 4
    client = EmbeddingClient(fake_service, EmbeddingConfig(dim=TEST_DIM), sleep=sleeps)

    with pytest.raises(DimensionMismatchError) as excinfo:
        await client.embed_batch(["alpha"])
    assert (excinfo.value.expected, excinfo.value.actual) == (TEST_DIM, 4)


@pytest.mark.asyncio
async def test_short_response_is_rejected(sleeps) -> None:
    class ShortService:
        async def embed(self, texts):
            return [fake_vector(texts[0])]

        async def complete(self, messages, **params):
            return ""

    client = EmbeddingClient(ShortService(), EmbeddingConfig(dim=TEST_DIM), sleep=sleeps)
    with pytest.raises(EmbeddingServiceError):
        await client.embed_batch(["alpha", "beta"])


@pytest.mark.asyncio
async def test_embed_one_returns_single_vector(embedding_client) -> None:
    assert await embedding_client.embed_one("cats and dogs") == fake_vector("cats and dogs")


@pytest.mark.asyncio
async def test_embed_one_bounds_rate_limit_retries(fake_service, sleeps) -> None:
    fake_service.embed_errors = [RateLimitedError("slow down") for _ in range(50)]
    config = EmbeddingConfig(dim=TEST_DIM, retry_delay=2.0, query_max_retries=2)
    client = EmbeddingClient(fake_service, config, sleep=sleeps)

    with pytest.raises(EmbeddingServiceError) as excinfo:
        await client.embed_one("cats")

    assert excinfo.value.status == 429
    assert len(fake_service.embed_calls) == 3
    assert sleeps.delays == [2.0, 2.0]


@pytest.mark.asyncio
async def test_embed_one_recovers_within_retry_budget(fake_service, sleeps) -> None:
    fake_service.embed_errors = [RateLimitedError("slow down")]
    config = EmbeddingConfig(dim=TEST_DIM, query_max_retries=1)
    client = EmbeddingClient(fake_service, config, sleep=sleeps)

    assert await client.embed_one("cats") == fake_vector("cats")
    assert len(fake_service.embed_calls) == 2
