"""Document rows: creation, lookup and the lifecycle status sink."""

from __future__ import annotations

from askdocs.core.errors import DocumentNotFoundError
from askdocs.core.logging import ctx, get_logger
from askdocs.db.sqlite import SQLiteDatabase
from askdocs.models.entities import Document, DocumentStatus
from askdocs.utils.helpers import new_id, now_ms

logger = get_logger(__name__)

_COLUMNS = "id, owner_id, name, storage_path, status, error, created_at, updated_at"


class DocumentRepository:
    """Reads and writes the ``documents`` table."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def create(self, owner_id: str, name: str, storage_path: str, document_id: str | None = None) -> Document:
        document_id = document_id or new_id()
        now = now_ms()
        self.db.execute(
            f"INSERT INTO documents ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, NULL, ?, ?)",
            [document_id, owner_id, name, storage_path, DocumentStatus.PENDING.value, now, now],
        )
        self.db.commit()
        return self.get(document_id)

    def get(self, document_id: str) -> Document:
        row = self.db.execute(f"SELECT {_COLUMNS} FROM documents WHERE id = ?", [document_id]).fetchone()
        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return Document.from_row(row)

    def list_for_owner(self, owner_id: str) -> list[Document]:
        rows = self.db.query(
            f"SELECT {_COLUMNS} FROM documents WHERE owner_id = ? ORDER BY created_at DESC, id",
            [owner_id],
        )
        return [Document.from_row(row) for row in rows]

    def claim_for_processing(self, document_id: str) -> bool:
        """Move a ``pending`` document to ``processing``.

        Returns False when the document was not pending, so only one ingestion
        run can own a document.
        """
        cursor = self.db.execute(
            "UPDATE documents SET status = ?, error = NULL, updated_at = ? WHERE id = ? AND status = ?",
            [DocumentStatus.PROCESSING.value, now_ms(), document_id, DocumentStatus.PENDING.value],
        )
        self.db.commit()
        return cursor.rowcount == 1

    def update_status(self, document_id: str, status: DocumentStatus, error: str | None = None) -> None:
        """Idempotent, last-write-wins status write."""
        self.db.execute(
            "UPDATE documents SET status = ?, error = ?, updated_at = ? WHERE id = ?",
            [status.value, error, now_ms(), document_id],
        )
        self.db.commit()
        logger.info(
            "Document status updated",
            extra=ctx(document_id=document_id, status=status.value),
        )


__all__ = ["DocumentRepository"]
