"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(slots=True)
class ChunkPayload:
    """Chunk text paired with its embedding, prior to persistence."""

    ordinal: int
    text: str
    vector: Sequence[float]


@dataclass(slots=True)
class IngestResult:
    """Outcome for a single ingested document."""

    document_id: str
    status: str
    chunks: int = 0


__all__ = ["ChunkPayload", "IngestResult"]
