"""Query API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from askdocs.api.dependencies import get_current_owner, get_query_service
from askdocs.models.dto import QueryRequest, QueryResponse, SourceChunk
from askdocs.rag.query import QueryService

router = APIRouter()


@router.post("/query", response_model=QueryResponse, summary="Answer a question from the caller's documents")
async def run_query(
    request: QueryRequest,
    owner_id: str = Depends(get_current_owner),
    service: QueryService = Depends(get_query_service),
) -> QueryResponse:
    result = await service.answer(request.query, owner_id)
    return QueryResponse(
        answer=result.answer,
        sources=[
            SourceChunk(
                chunk_id=source.chunk_id,
                document_id=source.document_id,
                score=source.score,
                strategy=source.strategy,
            )
            for source in result.sources
        ],
    )


__all__ = ["router"]
