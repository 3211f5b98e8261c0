"""Document upload, ingestion and status routes."""

from __future__ import annotations

from pathlib import PurePosixPath

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from askdocs.api.dependencies import (
    get_app_settings,
    get_current_owner,
    get_document_repository,
    get_ingest_pipeline,
    get_storage,
    get_vector_store,
)
from askdocs.core.config import Settings
from askdocs.core.errors import UnauthorizedError, UnsupportedFormatError
from askdocs.db.documents import DocumentRepository
from askdocs.ingest.extractors import ExtractorRegistry
from askdocs.ingest.pipeline import IngestPipeline
from askdocs.models.dto import DocumentResponse, DocumentStatusResponse, IngestResponse
from askdocs.models.entities import Document
from askdocs.retrieval.vector_store import VectorStore
from askdocs.storage.local import LocalStorage
from askdocs.utils.helpers import new_id

router = APIRouter()

_SUPPORTED_SUFFIXES = ExtractorRegistry().suffixes


@router.post("", response_model=DocumentResponse, status_code=201, summary="Upload a document")
async def upload_document(
    file: UploadFile = File(...),
    owner_id: str = Depends(get_current_owner),
    settings: Settings = Depends(get_app_settings),
    documents: DocumentRepository = Depends(get_document_repository),
    storage: LocalStorage = Depends(get_storage),
) -> DocumentResponse:
    name = PurePosixPath(file.filename or "").name
    suffix = PurePosixPath(name).suffix.lower()
    if not name or suffix not in _SUPPORTED_SUFFIXES:
        raise UnsupportedFormatError(f"Unsupported file type: {suffix.lstrip('.') or '<none>'}")
    data = await file.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise HTTPException(status_code=413, detail=f"File size must be less than {limit_mb}MB")

    document_id = new_id()
    storage_path = storage.upload(f"{owner_id}/{document_id}_{name}", data)
    document = documents.create(owner_id, name, storage_path, document_id=document_id)
    return DocumentResponse.from_entity(document)


@router.get("", response_model=list[DocumentResponse], summary="List the caller's documents")
async def list_documents(
    owner_id: str = Depends(get_current_owner),
    documents: DocumentRepository = Depends(get_document_repository),
) -> list[DocumentResponse]:
    return [DocumentResponse.from_entity(document) for document in documents.list_for_owner(owner_id)]


@router.get("/{document_id}", response_model=DocumentResponse, summary="Document detail")
async def get_document(
    document_id: str,
    owner_id: str = Depends(get_current_owner),
    documents: DocumentRepository = Depends(get_document_repository),
    vector_store: VectorStore = Depends(get_vector_store),
) -> DocumentResponse:
    document = _owned_document(documents, document_id, owner_id)
    return DocumentResponse.from_entity(document, chunks=vector_store.count_chunks(document_id))


@router.get("/{document_id}/status", response_model=DocumentStatusResponse, summary="Processing status")
async def get_document_status(
    document_id: str,
    owner_id: str = Depends(get_current_owner),
    documents: DocumentRepository = Depends(get_document_repository),
) -> DocumentStatusResponse:
    document = _owned_document(documents, document_id, owner_id)
    return DocumentStatusResponse(document_id=document.id, status=document.status.value, error=document.error)


@router.post("/{document_id}/ingest", response_model=IngestResponse, summary="Extract, chunk and embed a document")
async def ingest_document(
    document_id: str,
    owner_id: str = Depends(get_current_owner),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> IngestResponse:
    result = await pipeline.ingest_document(document_id, owner_id)
    return IngestResponse(document_id=result.document_id, status=result.status, chunks=result.chunks)


def _owned_document(documents: DocumentRepository, document_id: str, owner_id: str) -> Document:
    document = documents.get(document_id)
    if document.owner_id != owner_id:
        raise UnauthorizedError("Document belongs to another user")
    return document


__all__ = ["router"]
