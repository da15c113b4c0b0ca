"""
API Models

Pydantic request/response models for the document, search and query
endpoints. Documents themselves are returned using the shared
``Document`` / ``SearchResult`` / ``RAGResponse`` models.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------

class DocumentCreateRequest(BaseModel):
    """
    Payload for ``POST /api/documents``.

    Blank content passes schema validation and is rejected by the service.
    """
    content: str
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")


class DocumentCreatedResponse(BaseModel):
    id: str


class DocumentDeletedResponse(BaseModel):
    status: Literal["deleted"] = "deleted"
    id: str


# ---------------------------------------------------------------------
# Search / Query
# ---------------------------------------------------------------------

class SearchRequest(BaseModel):
    """
    Payload for ``POST /api/search`` and ``POST /api/query``.

    A missing or non-positive ``limit`` falls back to the service default.
    """
    query: str
    limit: int = Field(default=5)

    model_config = ConfigDict(extra="forbid")


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
