"""Ingest pipeline orchestration."""

from __future__ import annotations

import time

from askdocs.core.config import Settings
from askdocs.core.errors import (
    DocumentStateError,
    EmptyContentError,
    NoChunksError,
    UnauthorizedError,
)
from askdocs.core.logging import ctx, get_logger
from askdocs.core.metrics import INGEST_DURATION
from askdocs.db.documents import DocumentRepository
from askdocs.ingest.chunker import chunk_text
from askdocs.ingest.embeddings import EmbeddingClient
from askdocs.ingest.extractors import ExtractorRegistry
from askdocs.ingest.types import ChunkPayload, IngestResult
from askdocs.models.entities import Document, DocumentStatus
from askdocs.retrieval.vector_store import VectorStore
from askdocs.storage.local import LocalStorage

logger = get_logger(__name__)


class IngestPipeline:
    """Drive one document through extract, chunk, embed and store.

    Status moves ``pending -> processing -> completed``; any failure after the
    document has been claimed moves it to ``error`` and re-raises.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        storage: LocalStorage,
        embedding_client: EmbeddingClient,
        vector_store: VectorStore,
        settings: Settings,
        extractors: ExtractorRegistry | None = None,
    ) -> None:
        self.documents = documents
        self.storage = storage
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.settings = settings
        self.extractors = extractors or ExtractorRegistry()

    async def ingest_document(self, document_id: str, owner_id: str) -> IngestResult:
        document = self.documents.get(document_id)
        if document.owner_id != owner_id:
            raise UnauthorizedError("Document belongs to another user")
        if not self.documents.claim_for_processing(document_id):
            current = self.documents.get(document_id)
            raise DocumentStateError(f"Document {document_id} is {current.status.value}, expected pending")

        logger.info(
            "Starting document processing",
            extra=ctx(document_id=document_id, file_name=document.name, owner_id=owner_id),
        )
        start = time.perf_counter()
        try:
            chunk_count = await self._process(document)
            self.documents.update_status(document_id, DocumentStatus.COMPLETED)
        except Exception as exc:
            INGEST_DURATION.labels(outcome="error").observe(time.perf_counter() - start)
            logger.exception("Document processing failed", extra=ctx(document_id=document_id))
            self._mark_failed(document_id, exc)
            raise

        elapsed = time.perf_counter() - start
        INGEST_DURATION.labels(outcome="completed").observe(elapsed)
        logger.info(
            "Document processing completed",
            extra=ctx(document_id=document_id, chunks=chunk_count, elapsed_ms=round(elapsed * 1000, 1)),
        )
        return IngestResult(
            document_id=document_id,
            status=DocumentStatus.COMPLETED.value,
            chunks=chunk_count,
        )

    # Internal helpers -------------------------------------------------

    async def _process(self, document: Document) -> int:
        data = self.storage.download(document.storage_path)
        text = self.extractors.extract(document.name, data)
        if not text or not text.strip():
            raise EmptyContentError()

        chunks = chunk_text(
            text,
            target_size=self.settings.chunk_size,
            overlap=self.settings.chunk_overlap,
            overlap_divisor=self.settings.chunk_overlap_divisor,
            min_chars=self.settings.chunk_min_chars,
        )
        if not chunks:
            raise NoChunksError()
        logger.info(
            "Text extracted and chunked",
            extra=ctx(document_id=document.id, text_length=len(text), chunk_count=len(chunks)),
        )

        vectors = await self.embedding_client.embed_batch(chunks)
        payloads = [
            ChunkPayload(ordinal=ordinal, text=chunk, vector=vector)
            for ordinal, (chunk, vector) in enumerate(zip(chunks, vectors, strict=True))
        ]
        self.vector_store.upsert_chunks(document.id, payloads)
        return len(payloads)

    def _mark_failed(self, document_id: str, exc: Exception) -> None:
        try:
            self.vector_store.delete_chunks(document_id)
        except Exception:
            logger.exception("Failed to discard chunks", extra=ctx(document_id=document_id))
        try:
            self.documents.update_status(document_id, DocumentStatus.ERROR, error=str(exc))
        except Exception:
            logger.exception("Failed to update document status to error", extra=ctx(document_id=document_id))


__all__ = ["IngestPipeline"]
