"""Embedding client: batching and rate-limit handling over the model service."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from askdocs.core.config import Settings
from askdocs.core.errors import (
    DimensionMismatchError,
    EmbeddingServiceError,
    RateLimitedError,
    ServiceResponseError,
)
from askdocs.core.logging import ctx, get_logger
from askdocs.core.metrics import EMBEDDING_BATCHES
from askdocs.llm.service import ModelService

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(slots=True)
class EmbeddingConfig:
    dim: int
    batch_size: int = 10
    retry_delay: float = 2.0
    batch_delay: float = 0.5
    query_max_retries: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmbeddingConfig":
        return cls(
            dim=settings.embedding_dim,
            batch_size=settings.embedding_batch_size,
            retry_delay=settings.embedding_retry_delay,
            batch_delay=settings.embedding_batch_delay,
            query_max_retries=settings.embedding_query_max_retries,
        )


class EmbeddingClient:
    """Embeds texts in sequential fixed-size batches.

    A rate-limited batch is retried after ``retry_delay`` seconds, up to
    ``max_rate_limit_retries`` times per batch (``None`` keeps retrying while the
    service answers 429). Any other failure aborts the whole call with
    :class:`EmbeddingServiceError`.
    """

    def __init__(self, service: ModelService, config: EmbeddingConfig, sleep: Sleep = asyncio.sleep) -> None:
        self.service = service
        self.config = config
        self._sleep = sleep

    @property
    def dim(self) -> int:
        return self.config.dim

    async def embed_batch(
        self,
        texts: Sequence[str],
        max_rate_limit_retries: int | None = None,
    ) -> list[list[float]]:
        if not texts:
            return []

        size = self.config.batch_size
        vectors: list[list[float]] = []
        start = 0
        retries = 0
        while start < len(texts):
            batch = list(texts[start : start + size])
            try:
                batch_vectors = await self.service.embed(batch)
            except RateLimitedError as exc:
                EMBEDDING_BATCHES.labels(result="rate_limited").inc()
                if max_rate_limit_retries is not None and retries >= max_rate_limit_retries:
                    logger.error(
                        "Embedding batch still rate limited, giving up",
                        extra=ctx(batch_start=start, retries=retries),
                    )
                    raise EmbeddingServiceError(exc.status, exc.body, provider_name=exc.provider_name) from exc
                retries += 1
                logger.warning(
                    "Embedding batch rate limited, retrying",
                    extra=ctx(batch_start=start, delay=self.config.retry_delay, error=exc.body),
                )
                await self._sleep(self.config.retry_delay)
                continue
            except ServiceResponseError as exc:
                EMBEDDING_BATCHES.labels(result="error").inc()
                logger.error(
                    "Failed to generate embeddings for batch",
                    extra=ctx(batch_start=start, status=exc.status, error=exc.body),
                )
                raise EmbeddingServiceError(exc.status, exc.body, provider_name=exc.provider_name) from exc

            self._validate(batch, batch_vectors)
            EMBEDDING_BATCHES.labels(result="ok").inc()
            vectors.extend(batch_vectors)
            start += size
            retries = 0
            if start < len(texts):
                await self._sleep(self.config.batch_delay)

        return vectors

    async def embed_one(self, text: str) -> list[float]:
        """Embed a query; rate limits are retried at most ``query_max_retries`` times."""
        vectors = await self.embed_batch([text], max_rate_limit_retries=self.config.query_max_retries)
        return vectors[0]

    def _validate(self, batch: Sequence[str], vectors: Sequence[Sequence[float]]) -> None:
        if len(vectors) != len(batch):
            raise EmbeddingServiceError(
                None,
                f"Expected {len(batch)} embeddings, received {len(vectors)}",
            )
        for vector in vectors:
            if len(vector) != self.config.dim:
                raise DimensionMismatchError(self.config.dim, len(vector))


__all__ = ["EmbeddingClient", "EmbeddingConfig"]
