"""
Document Data Models

Canonical in-memory representations shared by the ingestion pipeline, the
retrieval pipeline, the storage layer and the HTTP API.

Each chunk of an ingested file is stored as its own ``Document``; its
position is recorded in metadata (``chunk_index`` / ``chunk_count``).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """
    A stored unit of text with free-form metadata.

    Content is immutable once created; there is no update path.
    """

    id: UUID = Field(default_factory=uuid4)

    content: str = Field(
        ...,
        description="Text content of the document or chunk.",
    )

    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Open-ended key/value metadata (JSON scalars).",
    )

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)

    @classmethod
    def new(
        cls,
        content: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> "Document":
        """
        Create a document with a fresh id and equal creation/update times.
        """
        now = datetime.now(timezone.utc)
        return cls(
            content=content,
            metadata=dict(metadata or {}),
            created_at=now,
            updated_at=now,
        )


class VectorQuery(BaseModel):
    """
    Nearest-neighbor query against the store.

    ``threshold`` is a similarity floor; 0.0 disables filtering.
    """

    vector: List[float] = Field(..., min_length=1)
    limit: int = Field(default=5, ge=1)
    threshold: float = 0.0


class SearchResult(BaseModel):
    document: Document
    similarity: float


class RAGResponse(BaseModel):
    """
    Generated answer plus the documents that grounded it.
    """

    answer: str
    documents: List[Document] = Field(default_factory=list)
