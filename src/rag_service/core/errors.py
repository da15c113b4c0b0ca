"""
Error Taxonomy and HTTP Error Handling

This module defines the exceptions raised by the RAG core and the FastAPI
handlers that translate them into HTTP responses.

Taxonomy
--------
- ValidationError: caller mistakes (empty content/query, malformed identifier,
  malformed configuration). Surfaced immediately, never retried.
- CollaboratorError: embedding, generation and storage failures. Propagated
  upward with context; nothing in the core retries.
- IngestionError: a per-file / per-chunk wrapper carrying provenance.

Response shape
--------------
Every error response is ``{"error": <code>, "detail": <message>}``. 5xx
responses never include internal exception text.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("rag.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class RAGError(Exception):
    """Base class for all service errors."""


class ValidationError(RAGError, ValueError):
    """Raised when caller-supplied input is empty or malformed."""


class ConfigurationError(ValidationError):
    """Raised when the service configuration is missing or malformed."""


class CollaboratorError(RAGError, RuntimeError):
    """Raised when an external collaborator (API or database) fails."""


class EmbeddingError(CollaboratorError):
    """Raised when embedding generation fails."""


class GenerationError(CollaboratorError):
    """Raised when text generation fails."""


class StorageError(CollaboratorError):
    """Raised when a storage operation fails."""


class NotConnectedError(StorageError):
    """Raised when the store is used before ``connect()``."""


class DocumentNotFoundError(StorageError, LookupError):
    """Raised when a document identifier does not exist."""


class IngestionError(RAGError):
    """
    Raised when a document or file cannot be ingested.

    Carries the originating source (usually a file path) and, when the
    failure happened mid-document, the index of the failing chunk.
    """

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        chunk_index: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.chunk_index = chunk_index


class IngestionCancelledError(RAGError):
    """Raised when ingestion stops because cancellation was requested."""


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

_ERROR_CODES = {
    EmbeddingError: "embedding_error",
    GenerationError: "generation_error",
    StorageError: "storage_error",
}


def _error_payload(code: str, detail: Any) -> Dict[str, Any]:
    return {"error": code, "detail": detail}


async def rag_error_handler(request: Request, exc: RAGError) -> JSONResponse:
    """
    Map service exceptions to HTTP responses.

    - ValidationError -> 400 with the validation message
    - DocumentNotFoundError -> 404
    - anything else -> 500 with a generic message
    """
    if isinstance(exc, ValidationError):
        return JSONResponse(
            status_code=400,
            content=_error_payload("validation_error", str(exc)),
        )

    if isinstance(exc, DocumentNotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_payload("not_found", str(exc)),
        )

    logger.error(
        "Request failed: %s %s (%s: %s)",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc,
    )

    code = "internal_server_error"
    for exc_type, exc_code in _ERROR_CODES.items():
        if isinstance(exc, exc_type):
            code = exc_code
            break

    return JSONResponse(
        status_code=500,
        content=_error_payload(code, "Internal server error"),
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Report malformed request bodies and parameters as 400 Bad Request.
    """
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_payload("invalid_request", errors),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Logs the full stack trace internally and returns a generic 500 with no
    internal details.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content=_error_payload("internal_server_error", "Internal server error"),
    )
