"""Chunking utilities."""

from __future__ import annotations

import re
from typing import Iterator

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

DEFAULT_CHUNK_SIZE = 500
DEFAULT_OVERLAP = 50
DEFAULT_OVERLAP_DIVISOR = 5
MIN_CHUNK_CHARS = 10


def chunk_text(
    text: str,
    target_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    overlap_divisor: int = DEFAULT_OVERLAP_DIVISOR,
    min_chars: int = MIN_CHUNK_CHARS,
) -> list[str]:
    """Split text into overlapping sentence-aligned chunks.

    Sentences are accumulated until adding the next one would push the buffer
    past ``target_size`` characters. Each new chunk is seeded with the last
    ``overlap // overlap_divisor`` words of the previous one. Chunks of
    ``min_chars`` characters or fewer are dropped.
    """
    if not text.strip():
        return []

    overlap_words = overlap // overlap_divisor if overlap_divisor > 0 else 0
    chunks: list[str] = []
    current = ""

    for sentence in _iter_sentences(text):
        # +1 for the joining space
        if current and len(current) + 1 + len(sentence) > target_size:
            chunks.append(current)
            current = _join(_tail_words(current, overlap_words), sentence)
        else:
            current = _join(current, sentence)

    if current:
        chunks.append(current)

    return [chunk for chunk in chunks if len(chunk.strip()) > min_chars]


def _iter_sentences(text: str) -> Iterator[str]:
    for candidate in _SENTENCE_SPLIT_RE.split(text):
        sentence = candidate.strip()
        if sentence:
            yield sentence


def _tail_words(chunk: str, count: int) -> str:
    if count <= 0:
        return ""
    return " ".join(chunk.split()[-count:])


def _join(head: str, tail: str) -> str:
    return f"{head} {tail}" if head else tail


__all__ = ["chunk_text", "DEFAULT_CHUNK_SIZE", "DEFAULT_OVERLAP", "MIN_CHUNK_CHARS"]
