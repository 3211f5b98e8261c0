"""Retrieval components."""

from .vector_store import VectorStore, cosine_similarity

__all__ = [
    "VectorStore",
    "cosine_similarity",
]
