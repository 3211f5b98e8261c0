"""Query orchestration: retrieve, then answer or short-circuit."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from askdocs.core.config import Settings
from askdocs.core.logging import ctx, get_logger
from askdocs.ingest.embeddings import EmbeddingClient
from askdocs.models.entities import RetrievalResult
from askdocs.rag.synthesizer import AnswerSynthesizer
from askdocs.retrieval.vector_store import VectorStore

logger = get_logger(__name__)

NO_RELEVANT_INFORMATION = (
    "I couldn't find any relevant information in your documents to answer this question. "
    "Please make sure you have uploaded documents and they have been processed."
)


@dataclass(slots=True)
class SourceCitation:
    chunk_id: str
    document_id: str
    score: float | None
    strategy: str

    @classmethod
    def from_result(cls, result: RetrievalResult) -> "SourceCitation":
        return cls(
            chunk_id=result.chunk_id,
            document_id=result.document_id,
            score=result.similarity,
            strategy=result.strategy,
        )


@dataclass(slots=True)
class QueryAnswer:
    answer: str
    sources: list[SourceCitation] = field(default_factory=list)


class QueryService:
    """Answers a question from the owner's completed documents."""

    def __init__(
        self,
        settings: Settings,
        embedding_client: EmbeddingClient,
        vector_store: VectorStore,
        synthesizer: AnswerSynthesizer,
    ) -> None:
        self.settings = settings
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.synthesizer = synthesizer

    async def answer(self, question: str, owner_id: str) -> QueryAnswer:
        start_time = time.perf_counter()
        logger.info("Processing chat query", extra=ctx(owner_id=owner_id, query_length=len(question)))

        query_vector = await self.embedding_client.embed_one(question)
        results = self.vector_store.similarity_search(
            query_vector,
            owner_id,
            threshold=self.settings.match_threshold,
            top_k=self.settings.match_count,
        )
        if not results:
            return QueryAnswer(answer=NO_RELEVANT_INFORMATION, sources=[])

        answer = await self.synthesizer.synthesize(question, results)
        logger.info(
            "Chat query completed",
            extra=ctx(
                owner_id=owner_id,
                chunks_found=len(results),
                answer_length=len(answer),
                elapsed_ms=round((time.perf_counter() - start_time) * 1000, 1),
            ),
        )
        return QueryAnswer(answer=answer, sources=[SourceCitation.from_result(item) for item in results])


__all__ = ["QueryService", "QueryAnswer", "SourceCitation", "NO_RELEVANT_INFORMATION"]
