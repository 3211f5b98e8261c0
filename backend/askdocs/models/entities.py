"""Internal dataclasses representing persisted and transient entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(slots=True)
class Document:
    id: str
    owner_id: str
    name: str
    storage_path: str
    status: DocumentStatus
    error: str | None
    created_at: int
    updated_at: int

    @classmethod
    def from_row(cls, row: Any) -> "Document":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            storage_path=row["storage_path"],
            status=DocumentStatus(row["status"]),
            error=row["error"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass(slots=True)
class RetrievalResult:
    """A retrieved chunk.

    ``similarity`` is ``None`` for results produced by the unscored fallback
    path (``strategy == "fallback"``).
    """

    chunk_id: str
    document_id: str
    ordinal: int
    text: str
    similarity: float | None
    strategy: Literal["vector", "fallback"] = "vector"


@dataclass(slots=True)
class ChatTurn:
    role: Literal["system", "user", "assistant"]
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


__all__ = ["DocumentStatus", "Document", "RetrievalResult", "ChatTurn"]
