"""
Document Routes

CRUD endpoints for stored documents. Documents are created from raw content
(embedded and stored as a single unit); there is no update path.
"""

from __future__ import annotations

import uuid
from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from .dependencies import get_rag_service
from .models import (
    DocumentCreateRequest,
    DocumentCreatedResponse,
    DocumentDeletedResponse,
)
from ..core.errors import ValidationError
from ..documents.models import Document
from ..service.rag import RAGService

router = APIRouter(prefix="/api/documents", tags=["documents"])


def _parse_document_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError as exc:
        raise ValidationError("Invalid document ID format") from exc


def _parse_page_param(raw: str, default: int, minimum: int) -> int:
    """
    Parse a paging query parameter; malformed or out-of-range values use
    ``default``.
    """
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


@router.post(
    "",
    response_model=DocumentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Embed and store a document",
)
async def create_document(
    req: DocumentCreateRequest,
    service: Annotated[RAGService, Depends(get_rag_service)],
) -> DocumentCreatedResponse:
    document_id = await service.add_document(req.content, req.metadata)
    return DocumentCreatedResponse(id=document_id)


@router.get("", response_model=List[Document], summary="List documents, newest first")
async def list_documents(
    service: Annotated[RAGService, Depends(get_rag_service)],
    limit: str = "10",
    offset: str = "0",
) -> List[Document]:
    return await service.list_documents(
        limit=_parse_page_param(limit, default=10, minimum=1),
        offset=_parse_page_param(offset, default=0, minimum=0),
    )


@router.get("/{document_id}", response_model=Document)
async def get_document(
    document_id: str,
    service: Annotated[RAGService, Depends(get_rag_service)],
) -> Document:
    return await service.get_document(_parse_document_id(document_id))


@router.delete("/{document_id}", response_model=DocumentDeletedResponse)
async def delete_document(
    document_id: str,
    service: Annotated[RAGService, Depends(get_rag_service)],
) -> DocumentDeletedResponse:
    """
    Delete a document. Its embedding is removed with it.
    """
    parsed = _parse_document_id(document_id)
    await service.delete_document(parsed)
    return DocumentDeletedResponse(id=str(parsed))
