"""
Retrieval-Augmented Generation Service

Coordinates the embedding, storage and generation collaborators to:

- add single documents
- run nearest-neighbor search for a query
- answer a query from retrieved context

Every call is independent; the service holds no mutable state beyond its
collaborators.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from ..core.errors import CollaboratorError, ValidationError
from ..db.vector_store import VectorDB
from ..documents.models import Document, RAGResponse, SearchResult, VectorQuery
from ..embeddings.embedder import EmbeddingService
from ..llm.client import TextGenerator

logger = logging.getLogger("rag.service")

DEFAULT_SEARCH_LIMIT = 5

CONTEXT_HEADER = "Context information is below.\n---------------------\n"
CONTEXT_FOOTER = (
    "---------------------\n"
    "Given the context information and not prior knowledge, "
    "answer the following query:\n"
)


class RAGService:
    def __init__(
        self,
        store: VectorDB,
        embedder: EmbeddingService,
        generator: TextGenerator,
    ) -> None:
        if store is None:
            raise ValueError("store is required")
        if embedder is None:
            raise ValueError("embedder is required")
        if generator is None:
            raise ValueError("generator is required")

        self.store = store
        self.embedder = embedder
        self.generator = generator

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def add_document(
        self,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Embed and store a single document.

        Returns
        -------
        str
            The new document's identifier.

        Raises
        ------
        ValidationError
            If ``content`` is blank.
        """
        if not content or not content.strip():
            raise ValidationError("document content cannot be empty")

        doc = Document.new(content, metadata)
        try:
            embedding = await self.embedder.embed(content)
        except CollaboratorError as exc:
            raise _with_context(exc, "failed to generate embedding") from exc

        try:
            await self.store.store_document(doc, embedding)
        except CollaboratorError as exc:
            raise _with_context(exc, "failed to store document") from exc

        logger.info("Stored document %s (%d chars)", doc.id, len(content))
        return str(doc.id)

    async def get_document(self, document_id: UUID) -> Document:
        return await self.store.get_document(document_id)

    async def list_documents(self, limit: int = 10, offset: int = 0) -> List[Document]:
        return await self.store.list_documents(limit=limit, offset=offset)

    async def delete_document(self, document_id: UUID) -> None:
        await self.store.delete_document(document_id)
        logger.info("Deleted document %s", document_id)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def search_similar(
        self,
        query: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> List[SearchResult]:
        """
        Return up to ``limit`` stored documents ranked by similarity to
        ``query``. No similarity floor is applied.
        """
        if not query or not query.strip():
            raise ValidationError("query cannot be empty")

        if limit <= 0:
            limit = DEFAULT_SEARCH_LIMIT

        try:
            vector = await self.embedder.embed(query)
        except CollaboratorError as exc:
            raise _with_context(exc, "failed to generate query embedding") from exc

        try:
            results = await self.store.find_similar(
                VectorQuery(vector=vector, limit=limit, threshold=0.0)
            )
        except CollaboratorError as exc:
            raise _with_context(exc, "failed to find similar documents") from exc

        logger.debug("Search returned %d results (limit=%d)", len(results), limit)
        return results

    async def query(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> RAGResponse:
        results = await self.search_similar(query, limit)
        documents = [r.document for r in results]

        prompt = self.build_augmented_prompt(query, documents)
        try:
            answer = await self.generator.generate(prompt)
        except CollaboratorError as exc:
            raise _with_context(exc, "failed to generate response") from exc

        return RAGResponse(answer=answer, documents=documents)

    @staticmethod
    def build_augmented_prompt(query: str, documents: Sequence[Document]) -> str:
        """
        Wrap retrieved documents around ``query``. With no documents the
        query is returned unchanged.
        """
        if not documents:
            return query

        parts = [CONTEXT_HEADER]
        for i, doc in enumerate(documents, start=1):
            parts.append(f"Document {i}:\n{doc.content}\n\n")
        parts.append(CONTEXT_FOOTER)
        parts.append(query)
        return "".join(parts)


def _with_context(exc: CollaboratorError, context: str) -> CollaboratorError:
    """
    Rebuild a collaborator error with a contextual prefix, keeping its type.
    """
    return type(exc)(f"{context}: {exc}")
