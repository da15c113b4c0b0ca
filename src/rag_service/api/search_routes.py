"""
Search Routes

Semantic search and retrieval-augmented query endpoints.
"""

from fastapi import APIRouter, Depends, status
from typing import List, Annotated

from .dependencies import get_rag_service
from .models import SearchRequest
from ..documents.models import RAGResponse, SearchResult
from ..service.rag import RAGService

router = APIRouter(prefix="/api", tags=["search"])


@router.post(
    "/search",
    response_model=List[SearchResult],
    summary="Vector-based semantic search",
    status_code=status.HTTP_200_OK,
)
async def search(
    req: SearchRequest,
    service: Annotated[RAGService, Depends(get_rag_service)],
) -> List[SearchResult]:
    """
    Return stored documents ranked by similarity to the query.

    Parameters
    ----------
    req : SearchRequest
        Contains:
        - query: Search query string
        - limit: Number of results to return

    Returns
    -------
    List[SearchResult]
        Ranked list of matching documents, most similar first.
    """
    return await service.search_similar(req.query, req.limit)


@router.post(
    "/query",
    response_model=RAGResponse,
    summary="Answer a query from retrieved context",
)
async def query(
    req: SearchRequest,
    service: Annotated[RAGService, Depends(get_rag_service)],
) -> RAGResponse:
    return await service.query(req.query, req.limit)
