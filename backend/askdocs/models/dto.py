"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from askdocs.models.entities import Document

Status = Literal["pending", "processing", "completed", "error"]


class DocumentResponse(BaseModel):
    id: str
    name: str
    status: Status
    storage_path: str
    error: str | None = None
    created_at: datetime
    updated_at: datetime
    chunks: int | None = None

    @classmethod
    def from_entity(cls, document: Document, chunks: int | None = None) -> "DocumentResponse":
        return cls(
            id=document.id,
            name=document.name,
            status=document.status.value,
            storage_path=document.storage_path,
            error=document.error,
            created_at=_ms_to_datetime(document.created_at),
            updated_at=_ms_to_datetime(document.updated_at),
            chunks=chunks,
        )


class DocumentStatusResponse(BaseModel):
    document_id: str
    status: Status
    error: str | None = None


class IngestResponse(BaseModel):
    success: bool = True
    document_id: str
    status: Status
    chunks: int


class QueryRequest(BaseModel):
    query: str = Field(min_length=1, max_length=4000)


class SourceChunk(BaseModel):
    chunk_id: str
    document_id: str
    score: float | None = Field(default=None, description="Cosine similarity; null for unscored fallback results")
    strategy: Literal["vector", "fallback"]


class QueryResponse(BaseModel):
    answer: str
    sources: list[SourceChunk]


class ErrorResponse(BaseModel):
    error: str


def _ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


__all__ = [
    "DocumentResponse",
    "DocumentStatusResponse",
    "IngestResponse",
    "QueryRequest",
    "SourceChunk",
    "QueryResponse",
    "ErrorResponse",
]
