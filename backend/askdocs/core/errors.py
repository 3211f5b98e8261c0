"""Exception hierarchy for AskDocs.

Every error raised by the core derives from :class:`AskDocsError`, which carries
a message and an optional ``provider_name`` naming the remote service involved.

    AskDocsError
    +-- ConfigurationError        missing credentials or settings
    +-- UnauthorizedError         missing credential or identity mismatch
    +-- DocumentNotFoundError
    +-- DocumentStateError        illegal lifecycle transition
    +-- StorageError
    +-- UnsupportedFormatError    no extractor for the file extension
    +-- EmptyContentError         extraction produced no text
    +-- NoChunksError             chunking produced nothing retrievable
    +-- DimensionMismatchError    embedding dimension differs from the corpus
    +-- ServiceResponseError      raw non-success reply from the model service
    |   +-- RateLimitedError      HTTP 429
    +-- EmbeddingServiceError     embedding call failed for good
    +-- SynthesisError            chat completion failed after retries
"""

from __future__ import annotations


class AskDocsError(Exception):
    """Base exception for all AskDocs errors."""

    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, provider_name: str | None = None) -> None:
        self.message = message or self.default_message
        self.provider_name = provider_name
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.provider_name:
            return f"[{self.provider_name}] {self.message}"
        return self.message


class ConfigurationError(AskDocsError):
    default_message = "Required configuration is missing"


class UnauthorizedError(AskDocsError):
    default_message = "Unauthorized"


class DocumentNotFoundError(AskDocsError):
    default_message = "Document not found"


class DocumentStateError(AskDocsError):
    default_message = "Document is not in a state that allows this operation"


class StorageError(AskDocsError):
    default_message = "Storage operation failed"


class UnsupportedFormatError(AskDocsError):
    default_message = "Unsupported file type"


class EmptyContentError(AskDocsError):
    default_message = "No text content extracted from file"


class NoChunksError(AskDocsError):
    default_message = "No chunks created from text content"


class DimensionMismatchError(AskDocsError):
    """Raised when a vector's length differs from the corpus dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Embedding dimension mismatch: expected {expected}, got {actual}")


class ServiceResponseError(AskDocsError):
    """Non-success reply from the model service.

    ``status`` is ``None`` when the request never produced a response
    (timeouts, refused connections).
    """

    def __init__(
        self,
        status: int | None,
        body: str = "",
        provider_name: str | None = None,
    ) -> None:
        self.status = status
        self.body = body
        label = status if status is not None else "transport"
        super().__init__(f"Model service error: {label} {body}".strip(), provider_name=provider_name)

    @property
    def is_transient(self) -> bool:
        return self.status is None or self.status >= 500


class RateLimitedError(ServiceResponseError):
    def __init__(self, body: str = "", provider_name: str | None = None) -> None:
        super().__init__(429, body, provider_name=provider_name)


class EmbeddingServiceError(AskDocsError):
    """Embedding request failed with a non-retryable response."""

    def __init__(self, status: int | None, body: str = "", provider_name: str | None = None) -> None:
        self.status = status
        self.body = body
        super().__init__(f"Embedding service error: {status} {body}".strip(), provider_name=provider_name)


class SynthesisError(AskDocsError):
    default_message = "Failed to generate response after maximum attempts"


__all__ = [
    "AskDocsError",
    "ConfigurationError",
    "UnauthorizedError",
    "DocumentNotFoundError",
    "DocumentStateError",
    "StorageError",
    "UnsupportedFormatError",
    "EmptyContentError",
    "NoChunksError",
    "DimensionMismatchError",
    "ServiceResponseError",
    "RateLimitedError",
    "EmbeddingServiceError",
    "SynthesisError",
]
