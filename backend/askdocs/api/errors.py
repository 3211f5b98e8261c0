"""Translate core errors into HTTP responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from askdocs.core.errors import (
    AskDocsError,
    ConfigurationError,
    DimensionMismatchError,
    DocumentNotFoundError,
    DocumentStateError,
    EmbeddingServiceError,
    EmptyContentError,
    NoChunksError,
    ServiceResponseError,
    StorageError,
    SynthesisError,
    UnauthorizedError,
    UnsupportedFormatError,
)
from askdocs.core.logging import ctx, get_logger

logger = get_logger(__name__)

QUERY_APOLOGY = "Failed to process query. Please try again."

_STATUS_MAP: tuple[tuple[type[AskDocsError], int], ...] = (
    (UnauthorizedError, 401),
    (DocumentNotFoundError, 404),
    (DocumentStateError, 409),
    (UnsupportedFormatError, 415),
    (EmptyContentError, 422),
    (NoChunksError, 422),
    (EmbeddingServiceError, 502),
    (SynthesisError, 502),
    (ServiceResponseError, 502),
    (ConfigurationError, 500),
    (DimensionMismatchError, 500),
    (StorageError, 500),
)


def status_for(exc: AskDocsError) -> int:
    for error_type, status_code in _STATUS_MAP:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def handle_askdocs_error(request: Request, exc: AskDocsError) -> JSONResponse:
    status_code = status_for(exc)
    message = exc.message
    if request.url.path.startswith("/query") and status_code >= 500:
        # callers of /query only ever see the apology; the cause stays in the log
        message = QUERY_APOLOGY
    if status_code >= 500:
        logger.error(
            "Request failed",
            exc_info=exc,
            extra=ctx(path=request.url.path, status=status_code, error=str(exc)),
        )
    else:
        logger.info("Request rejected", extra=ctx(path=request.url.path, status=status_code, error=str(exc)))
    return JSONResponse(status_code=status_code, content={"error": message})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AskDocsError, handle_askdocs_error)


__all__ = ["install_error_handlers", "status_for", "QUERY_APOLOGY"]
