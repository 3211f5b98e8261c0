"""Chunk vector storage and owner-scoped similarity search on SQLite."""

from __future__ import annotations

import sqlite3
from typing import Sequence

import numpy as np

from askdocs.core.errors import DimensionMismatchError, StorageError
from askdocs.core.logging import ctx, get_logger
from askdocs.core.metrics import RETRIEVAL_STRATEGY
from askdocs.db.sqlite import SQLiteDatabase
from askdocs.ingest.types import ChunkPayload
from askdocs.models.entities import DocumentStatus, RetrievalResult
from askdocs.utils.helpers import new_id, now_ms

logger = get_logger(__name__)

SIMILARITY_FUNCTION = "cosine_similarity"
DEFAULT_MATCH_THRESHOLD = 0.1
DEFAULT_MATCH_COUNT = 5


def to_blob(vector: Sequence[float]) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


def from_blob(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=np.float32)


def cosine_similarity(left: bytes, right: bytes) -> float | None:
    """SQL function: cosine similarity of two float32 blobs."""
    a = from_blob(left)
    b = from_blob(right)
    if a.shape != b.shape:
        return None
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom == 0.0:
        return 0.0
    return float(np.dot(a, b) / denom)


class VectorStore:
    """Sole writer of chunk rows; searches chunks of completed documents only."""

    def __init__(self, db: SQLiteDatabase, dim: int) -> None:
        self.db = db
        self.dim = dim
        self.db.register_function(SIMILARITY_FUNCTION, 2, cosine_similarity)

    def upsert_chunks(self, document_id: str, chunks: Sequence[ChunkPayload]) -> list[str]:
        if not chunks:
            return []
        for chunk in chunks:
            self._check_dim(chunk.vector)
        now = now_ms()
        rows = [
            (new_id("chk"), document_id, chunk.ordinal, chunk.text, to_blob(chunk.vector), self.dim, now)
            for chunk in chunks
        ]
        with self.db.transaction() as cursor:
            cursor.executemany(
                """
                INSERT INTO chunks (id, document_id, ordinal, text, embedding, dim, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        logger.info("Stored chunks", extra=ctx(document_id=document_id, chunks=len(rows)))
        return [row[0] for row in rows]

    def delete_chunks(self, document_id: str) -> int:
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM chunks WHERE document_id = ?", [document_id])
            return cursor.rowcount

    def count_chunks(self, document_id: str) -> int:
        row = self.db.execute("SELECT COUNT(*) AS count FROM chunks WHERE document_id = ?", [document_id]).fetchone()
        return int(row["count"]) if row else 0

    def similarity_search(
        self,
        query_vector: Sequence[float],
        owner_id: str,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        top_k: int = DEFAULT_MATCH_COUNT,
    ) -> list[RetrievalResult]:
        """Return up to ``top_k`` chunks ordered by descending similarity.

        When the similarity query fails or matches nothing, falls back to the
        owner's completed chunks in stored order, marked unscored. Raises
        :class:`DimensionMismatchError` when stored chunks were embedded at a
        different dimension, and :class:`StorageError` when the fallback read
        itself fails.
        """
        self._check_dim(query_vector)
        if not self._has_completed_documents(owner_id):
            return []
        for stored_dim in self._stored_dims(owner_id):
            if stored_dim != self.dim:
                raise DimensionMismatchError(self.dim, stored_dim)

        try:
            results = self._vector_query(query_vector, owner_id, threshold, top_k)
        except sqlite3.Error as exc:
            logger.error("Vector search failed", extra=ctx(owner_id=owner_id, error=str(exc)))
            results = []

        if results:
            RETRIEVAL_STRATEGY.labels(strategy="vector").inc()
            return results

        RETRIEVAL_STRATEGY.labels(strategy="fallback").inc()
        logger.info("Using fallback retrieval", extra=ctx(owner_id=owner_id))
        return self._fallback_query(owner_id, top_k)

    # ------------------------------------------------------------------

    def _vector_query(
        self,
        query_vector: Sequence[float],
        owner_id: str,
        threshold: float,
        top_k: int,
    ) -> list[RetrievalResult]:
        rows = self.db.query(
            f"""
            SELECT id, document_id, ordinal, text, similarity FROM (
              SELECT
                chunks.id,
                chunks.document_id,
                chunks.ordinal,
                chunks.text,
                {SIMILARITY_FUNCTION}(chunks.embedding, ?) AS similarity
              FROM chunks
              JOIN documents ON documents.id = chunks.document_id
              WHERE documents.owner_id = ? AND documents.status = ?
            )
            WHERE similarity > ?
            ORDER BY similarity DESC, document_id, ordinal
            LIMIT ?
            """,
            [to_blob(query_vector), owner_id, DocumentStatus.COMPLETED.value, threshold, top_k],
        )
        return [
            RetrievalResult(
                chunk_id=row["id"],
                document_id=row["document_id"],
                ordinal=row["ordinal"],
                text=row["text"],
                similarity=float(row["similarity"]),
                strategy="vector",
            )
            for row in rows
        ]

    def _fallback_query(self, owner_id: str, top_k: int) -> list[RetrievalResult]:
        rows = self._read(
            """
            SELECT chunks.id, chunks.document_id, chunks.ordinal, chunks.text
            FROM chunks
            JOIN documents ON documents.id = chunks.document_id
            WHERE documents.owner_id = ? AND documents.status = ?
            ORDER BY chunks.rowid
            LIMIT ?
            """,
            [owner_id, DocumentStatus.COMPLETED.value, top_k],
        )
        return [
            RetrievalResult(
                chunk_id=row["id"],
                document_id=row["document_id"],
                ordinal=row["ordinal"],
                text=row["text"],
                similarity=None,
                strategy="fallback",
            )
            for row in rows
        ]

    def _has_completed_documents(self, owner_id: str) -> bool:
        rows = self._read(
            "SELECT 1 FROM documents WHERE owner_id = ? AND status = ? LIMIT 1",
            [owner_id, DocumentStatus.COMPLETED.value],
        )
        return bool(rows)

    def _stored_dims(self, owner_id: str) -> list[int]:
        rows = self._read(
            """
            SELECT DISTINCT chunks.dim AS dim
            FROM chunks
            JOIN documents ON documents.id = chunks.document_id
            WHERE documents.owner_id = ? AND documents.status = ?
            """,
            [owner_id, DocumentStatus.COMPLETED.value],
        )
        return [int(row["dim"]) for row in rows]

    def _read(self, sql: str, params: Sequence[object]) -> list[sqlite3.Row]:
        try:
            return self.db.query(sql, params)
        except sqlite3.Error as exc:
            logger.error("Chunk store read failed", extra=ctx(error=str(exc)))
            raise StorageError(f"Failed to read chunks: {exc}") from exc

    def _check_dim(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dim:
            raise DimensionMismatchError(self.dim, len(vector))


__all__ = ["VectorStore", "cosine_similarity", "to_blob", "from_blob"]
