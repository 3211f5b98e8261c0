"""Test fixtures for AskDocs."""

from __future__ import annotations

import re
import sys
import zlib
from pathlib import Path
from typing import Any, Sequence

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from askdocs.core.config import Settings  # noqa: E402
from askdocs.db.documents import DocumentRepository  # noqa: E402
from askdocs.db.sqlite import SQLiteDatabase  # noqa: E402
from askdocs.ingest.embeddings import EmbeddingClient, EmbeddingConfig  # noqa: E402
from askdocs.ingest.pipeline import IngestPipeline  # noqa: E402
from askdocs.retrieval.vector_store import VectorStore  # noqa: E402
from askdocs.storage.local import LocalStorage  # noqa: E402

TEST_DIM = 8
TOKENS = "token-alice:alice,token-bob:bob"
_WORD_RE = re.compile(r"\w+")


def fake_vector(text: str, dim: int = TEST_DIM) -> list[float]:
    """Bag-of-words vector: texts sharing words get positive similarity."""
    vector = [0.0] * dim
    for word in _WORD_RE.findall(text.lower()):
        vector[zlib.crc32(word.encode("utf-8")) % dim] += 1.0
    return vector


class FakeModelService:
    """In-memory model service; queued errors are raised before succeeding."""

    def __init__(self, dim: int = TEST_DIM, answer: str = "Cats and dogs are mammals.") -> None:
        self.dim = dim
        self.answer = answer
        self.embed_calls: list[list[str]] = []
        self.complete_calls: list[tuple[list[dict[str, str]], dict[str, Any]]] = []
        self.embed_errors: list[Exception] = []
        self.complete_errors: list[Exception] = []

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.embed_calls.append(list(texts))
        if self.embed_errors:
            raise self.embed_errors.pop(0)
        return [fake_vector(text, self.dim) for text in texts]

    async def complete(self, messages: Sequence[dict[str, str]], **params: Any) -> str:
        self.complete_calls.append((list(messages), params))
        if self.complete_errors:
            raise self.complete_errors.pop(0)
        return self.answer


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("ASKDOCS_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("ASKDOCS_DB_PATH", str(tmp_path / "askdocs.db"))
    monkeypatch.setenv("ASKDOCS_STORAGE_DIR", str(tmp_path / "files"))
    monkeypatch.setenv("ASKDOCS_API_TOKENS", TOKENS)
    monkeypatch.setenv("ASKDOCS_EMBEDDING_DIM", str(TEST_DIM))
    monkeypatch.setenv("ASKDOCS_EMBEDDING_RETRY_DELAY", "0")
    monkeypatch.setenv("ASKDOCS_EMBEDDING_BATCH_DELAY", "0")
    monkeypatch.setenv("ASKDOCS_SYNTHESIS_BACKOFF_BASE", "0")
    monkeypatch.delenv("ASKDOCS_API_KEY", raising=False)

    from askdocs.api import dependencies as deps

    deps.reset_state()
    yield
    deps.reset_state()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        db_path=tmp_path / "askdocs.db",
        storage_dir=tmp_path / "files",
        embedding_dim=TEST_DIM,
        embedding_retry_delay=0,
        embedding_batch_delay=0,
        api_tokens={"token-alice": "alice", "token-bob": "bob"},
    )


@pytest.fixture
def db(settings: Settings) -> SQLiteDatabase:
    database = SQLiteDatabase(settings.db_path)
    database.ensure_schema()
    yield database
    database.close()


@pytest.fixture
def documents(db: SQLiteDatabase) -> DocumentRepository:
    return DocumentRepository(db)


@pytest.fixture
def storage(settings: Settings) -> LocalStorage:
    return LocalStorage(settings.storage_dir)


@pytest.fixture
def vector_store(db: SQLiteDatabase) -> VectorStore:
    return VectorStore(db, dim=TEST_DIM)


@pytest.fixture
def fake_service() -> FakeModelService:
    return FakeModelService()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def embedding_client(fake_service: FakeModelService, settings: Settings, sleeps: SleepRecorder) -> EmbeddingClient:
    return EmbeddingClient(fake_service, EmbeddingConfig.from_settings(settings), sleep=sleeps)


@pytest.fixture
def pipeline(
    documents: DocumentRepository,
    storage: LocalStorage,
    embedding_client: EmbeddingClient,
    vector_store: VectorStore,
    settings: Settings,
) -> IngestPipeline:
    return IngestPipeline(
        documents=documents,
        storage=storage,
        embedding_client=embedding_client,
        vector_store=vector_store,
        settings=settings,
    )


@pytest.fixture(scope="session")
def sample_text() -> str:
    return "Cats are mammals. Dogs are mammals too. Fish are not mammals."
