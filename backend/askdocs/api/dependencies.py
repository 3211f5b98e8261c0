"""Shared FastAPI dependencies."""

from __future__ import annotations

import threading
from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from askdocs.core.config import Settings, get_settings
from askdocs.core.errors import UnauthorizedError
from askdocs.db.documents import DocumentRepository
from askdocs.db.sqlite import SQLiteDatabase
from askdocs.ingest.embeddings import EmbeddingClient, EmbeddingConfig
from askdocs.ingest.pipeline import IngestPipeline
from askdocs.llm.service import HttpModelService, ModelService
from askdocs.rag.query import QueryService
from askdocs.rag.synthesizer import AnswerSynthesizer, SynthesisConfig
from askdocs.retrieval.vector_store import VectorStore
from askdocs.storage.local import LocalStorage

_DB: SQLiteDatabase | None = None
_VECTOR_STORE: VectorStore | None = None
_MODEL_SERVICE: ModelService | None = None
# sync dependencies run on the threadpool; singletons are built once under this lock
_LOCK = threading.RLock()

_bearer = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        with _LOCK:
            if _DB is None:
                db = SQLiteDatabase(get_app_settings().db_path)
                db.ensure_schema()
                _DB = db
    return _DB


def get_document_repository() -> DocumentRepository:
    return DocumentRepository(get_database())


def get_storage() -> LocalStorage:
    return LocalStorage(get_app_settings().storage_dir)


def get_vector_store() -> VectorStore:
    global _VECTOR_STORE
    if _VECTOR_STORE is None:
        with _LOCK:
            if _VECTOR_STORE is None:
                _VECTOR_STORE = VectorStore(get_database(), dim=get_app_settings().embedding_dim)
    return _VECTOR_STORE


def get_model_service() -> ModelService:
    """Build the HTTP model service on first use; fails without an API key."""
    global _MODEL_SERVICE
    if _MODEL_SERVICE is None:
        with _LOCK:
            if _MODEL_SERVICE is None:
                _MODEL_SERVICE = HttpModelService.from_settings(get_app_settings())
    return _MODEL_SERVICE


def get_embedding_client(service: ModelService = Depends(get_model_service)) -> EmbeddingClient:
    return EmbeddingClient(service, EmbeddingConfig.from_settings(get_app_settings()))


def get_ingest_pipeline(
    embedding_client: EmbeddingClient = Depends(get_embedding_client),
) -> IngestPipeline:
    return IngestPipeline(
        documents=get_document_repository(),
        storage=get_storage(),
        embedding_client=embedding_client,
        vector_store=get_vector_store(),
        settings=get_app_settings(),
    )


def get_query_service(
    service: ModelService = Depends(get_model_service),
    embedding_client: EmbeddingClient = Depends(get_embedding_client),
) -> QueryService:
    settings = get_app_settings()
    return QueryService(
        settings=settings,
        embedding_client=embedding_client,
        vector_store=get_vector_store(),
        synthesizer=AnswerSynthesizer(service, SynthesisConfig.from_settings(settings)),
    )


def get_current_owner(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """Resolve the bearer token to an owner id."""
    if credentials is None:
        raise UnauthorizedError("Missing authorization")
    owner_id = settings.api_tokens.get(credentials.credentials)
    if owner_id is None:
        raise UnauthorizedError("Unauthorized")
    return owner_id


def reset_state() -> None:
    """Drop cached singletons (used by tests and on shutdown)."""
    global _DB, _VECTOR_STORE, _MODEL_SERVICE
    with _LOCK:
        if _DB is not None:
            _DB.close()
        _DB = None
        _VECTOR_STORE = None
        _MODEL_SERVICE = None
    get_app_settings.cache_clear()
    get_settings.cache_clear()


__all__ = [
    "get_app_settings",
    "get_database",
    "get_document_repository",
    "get_storage",
    "get_vector_store",
    "get_model_service",
    "get_embedding_client",
    "get_ingest_pipeline",
    "get_query_service",
    "get_current_owner",
    "reset_state",
]
