"""
RAG Service Tests

Collaborators are ``AsyncMock`` objects specced on their capability classes.
"""

from uuid import UUID, uuid4

import pytest
from unittest.mock import AsyncMock

from rag_service.core.errors import (
    DocumentNotFoundError,
    EmbeddingError,
    GenerationError,
    StorageError,
    ValidationError,
)
from rag_service.db.vector_store import VectorDB
from rag_service.documents.models import Document, SearchResult, VectorQuery
from rag_service.embeddings.embedder import EmbeddingService
from rag_service.llm.client import TextGenerator
from rag_service.service.rag import RAGService


@pytest.fixture
def store():
    mock = AsyncMock(spec=VectorDB)
    mock.find_similar.return_value = []
    return mock


@pytest.fixture
def embedder():
    mock = AsyncMock(spec=EmbeddingService)
    mock.embed.return_value = [0.1, 0.2, 0.3]
    return mock


@pytest.fixture
def generator():
    mock = AsyncMock(spec=TextGenerator)
    mock.generate.return_value = "generated answer"
    return mock


@pytest.fixture
def service(store, embedder, generator):
    return RAGService(store, embedder, generator)


class TestConstruction:
    def test_requires_all_collaborators(self, store, embedder, generator):
        with pytest.raises(ValueError):
            RAGService(None, embedder, generator)
        with pytest.raises(ValueError):
            RAGService(store, None, generator)
        with pytest.raises(ValueError):
            RAGService(store, embedder, None)


class TestAddDocument:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   \n"])
    async def test_rejects_blank_content(self, service, store, content):
        with pytest.raises(ValidationError):
            await service.add_document(content, {"a": 1})
        store.store_document.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stores_document_with_embedding(self, service, store, embedder):
        document_id = await service.add_document("hello", {"a": 1})

        assert document_id
        embedder.embed.assert_awaited_once_with("hello")
        store.store_document.assert_awaited_once()

        doc, vector = store.store_document.await_args.args
        assert str(doc.id) == document_id
        assert UUID(document_id) == doc.id
        assert doc.content == "hello"
        assert doc.metadata == {"a": 1}
        assert doc.created_at == doc.updated_at
        assert vector == [0.1, 0.2, 0.3]


class TestSearchSimilar:
    @pytest.mark.asyncio
    async def test_rejects_blank_query(self, service, embedder):
        with pytest.raises(ValidationError):
            await service.search_similar("", 5)
        embedder.embed.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -3])
    async def test_non_positive_limit_uses_default(self, service, store, limit):
        await service.search_similar("q", limit)

        query = store.find_similar.await_args.args[0]
        assert isinstance(query, VectorQuery)
        assert query.limit == 5
        assert query.threshold == 0.0
        assert query.vector == [0.1, 0.2, 0.3]

    @pytest.mark.asyncio
    async def test_returns_store_order(self, service, store):
        first = SearchResult(document=Document.new("a"), similarity=0.9)
        second = SearchResult(document=Document.new("b"), similarity=0.4)
        store.find_similar.return_value = [first, second]

        results = await service.search_similar("q", 2)

        assert results == [first, second]
        assert store.find_similar.await_args.args[0].limit == 2


class TestQuery:
    @pytest.mark.asyncio
    async def test_no_documents_sends_bare_query(self, service, generator):
        response = await service.query("What is RAG?", 3)

        generator.generate.assert_awaited_once_with("What is RAG?")
        assert response.answer == "generated answer"
        assert response.documents == []

    @pytest.mark.asyncio
    async def test_prompt_wraps_retrieved_documents(self, service, store, generator):
        docs = [Document.new("First context."), Document.new("Second context.")]
        store.find_similar.return_value = [
            SearchResult(document=docs[0], similarity=0.8),
            SearchResult(document=docs[1], similarity=0.7),
        ]

        response = await service.query("What is RAG?")

        expected = (
            "Context information is below.\n"
            "---------------------\n"
            "Document 1:\nFirst context.\n\n"
            "Document 2:\nSecond context.\n\n"
            "---------------------\n"
            "Given the context information and not prior knowledge, "
            "answer the following query:\n"
            "What is RAG?"
        )
        generator.generate.assert_awaited_once_with(expected)
        assert response.documents == docs

    @pytest.mark.asyncio
    async def test_rejects_blank_query(self, service, generator):
        with pytest.raises(ValidationError):
            await service.query("  ")
        generator.generate.assert_not_awaited()


class TestDocumentPassThrough:
    @pytest.mark.asyncio
    async def test_get_document(self, service, store):
        doc = Document.new("x")
        store.get_document.return_value = doc

        assert await service.get_document(doc.id) == doc
        store.get_document.assert_awaited_once_with(doc.id)

    @pytest.mark.asyncio
    async def test_get_missing_document_propagates(self, service, store):
        store.get_document.side_effect = DocumentNotFoundError("missing")

        with pytest.raises(DocumentNotFoundError):
            await service.get_document(uuid4())

    @pytest.mark.asyncio
    async def test_list_documents(self, service, store):
        store.list_documents.return_value = []

        await service.list_documents(limit=3, offset=6)

        store.list_documents.assert_awaited_once_with(limit=3, offset=6)

    @pytest.mark.asyncio
    async def test_delete_document(self, service, store):
        document_id = uuid4()

        await service.delete_document(document_id)

        store.delete_document.assert_awaited_once_with(document_id)


class TestCollaboratorFailures:
    @pytest.mark.asyncio
    async def test_add_document_embedding_failure_has_context(self, service, store, embedder):
        cause = EmbeddingError("Embedding API error (status 500)")
        embedder.embed.side_effect = cause

        with pytest.raises(EmbeddingError, match="failed to generate embedding") as exc_info:
            await service.add_document("hello")

        assert exc_info.value.__cause__ is cause
        store.store_document.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_add_document_storage_failure_has_context(self, service, store):
        store.store_document.side_effect = StorageError("failed to store document: OperationalError")

        with pytest.raises(StorageError, match="^failed to store document: "):
            await service.add_document("hello")

    @pytest.mark.asyncio
    async def test_search_embedding_failure_has_context(self, service, embedder):
        embedder.embed.side_effect = EmbeddingError("boom")

        with pytest.raises(EmbeddingError, match="failed to generate query embedding: boom"):
            await service.search_similar("q")

    @pytest.mark.asyncio
    async def test_query_generation_failure_has_context(self, service, generator):
        generator.generate.side_effect = GenerationError("API error (status 503)")

        with pytest.raises(GenerationError, match="failed to generate response"):
            await service.query("q")
