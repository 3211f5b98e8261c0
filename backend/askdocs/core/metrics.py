"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "askdocs_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "askdocs_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "askdocs_ingest_duration_seconds",
    "Ingest pipeline duration",
    labelnames=("outcome",),
    registry=REGISTRY,
)

EMBEDDING_BATCHES = Counter(
    "askdocs_embedding_batches_total",
    "Embedding batches sent to the model service",
    labelnames=("result",),
    registry=REGISTRY,
)

SYNTHESIS_ATTEMPTS = Counter(
    "askdocs_synthesis_attempts_total",
    "Chat completion attempts",
    labelnames=("result",),
    registry=REGISTRY,
)

RETRIEVAL_STRATEGY = Counter(
    "askdocs_retrieval_total",
    "Similarity searches by the strategy that produced the results",
    labelnames=("strategy",),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "INGEST_DURATION",
    "EMBEDDING_BATCHES",
    "SYNTHESIS_ATTEMPTS",
    "RETRIEVAL_STRATEGY",
    "metrics_response",
]
