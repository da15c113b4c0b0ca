"""
Document Loader Tests

Uses ``tmp_path`` for input files and ``AsyncMock`` collaborators.
"""

import asyncio
from pathlib import Path

import pytest
from unittest.mock import AsyncMock

from rag_service.chunking.chunker import ChunkingOptions
from rag_service.core.errors import (
    EmbeddingError,
    IngestionCancelledError,
    IngestionError,
    StorageError,
    ValidationError,
)
from rag_service.db.vector_store import VectorDB
from rag_service.embeddings.embedder import EmbeddingService
from rag_service.ingestion.loader import DocumentLoader


@pytest.fixture
def store():
    return AsyncMock(spec=VectorDB)


@pytest.fixture
def embedder():
    mock = AsyncMock(spec=EmbeddingService)
    mock.embed.return_value = [0.1, 0.2]
    return mock


@pytest.fixture
def loader(store, embedder):
    return DocumentLoader(store, embedder, ChunkingOptions(strategy="paragraph"))


def _stored_docs(store):
    return [call.args[0] for call in store.store_document.await_args_list]


class TestProcessDocument:
    @pytest.mark.asyncio
    async def test_blank_content_rejected(self, loader, store):
        with pytest.raises(ValidationError):
            await loader.process_document("  \n ", {})
        store.store_document.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_each_chunk_stored_with_position(self, loader, store, embedder):
        count = await loader.process_document(
            "Para one.\n\nPara two.",
            {"batch_id": "b1"},
        )

        assert count == 2
        assert embedder.embed.await_count == 2

        docs = _stored_docs(store)
        assert [d.content for d in docs] == ["Para one.", "Para two."]
        for i, doc in enumerate(docs):
            assert doc.metadata == {"batch_id": "b1", "chunk_index": i, "chunk_count": 2}

    @pytest.mark.asyncio
    async def test_embedding_failure_aborts_without_rollback(self, loader, store, embedder):
        embedder.embed.side_effect = [[0.1, 0.2], EmbeddingError("boom"), [0.3, 0.4]]

        with pytest.raises(IngestionError) as exc_info:
            await loader.process_document(
                "One.\n\nTwo.\n\nThree.", {}, source="doc.txt"
            )

        assert exc_info.value.chunk_index == 1
        assert exc_info.value.source == "doc.txt"
        assert "embedding" in str(exc_info.value)
        assert store.store_document.await_count == 1
        store.delete_document.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_storage_failure(self, loader, store):
        store.store_document.side_effect = StorageError("db down")

        with pytest.raises(IngestionError, match="failed to store chunk 0"):
            await loader.process_document("One.\n\nTwo.", {})


class TestLoadFromPath:
    @pytest.mark.asyncio
    async def test_single_file(self, loader, store, tmp_path: Path):
        path = tmp_path / "notes.txt"
        path.write_text("Alpha.\n\nBeta.", encoding="utf-8")

        report = await loader.load_from_path(path, {"loaded_by": "tests"})

        assert report.files_processed == 1
        assert report.chunks_stored == 2

        meta = _stored_docs(store)[0].metadata
        assert meta["loaded_by"] == "tests"
        assert meta["source"] == "file"
        assert meta["file_name"] == "notes.txt"
        assert meta["chunk_index"] == 0
        assert meta["chunk_count"] == 2

    @pytest.mark.asyncio
    async def test_single_empty_file_raises(self, loader, tmp_path: Path):
        path = tmp_path / "empty.txt"
        path.write_text("   ", encoding="utf-8")

        with pytest.raises(ValidationError):
            await loader.load_from_path(path)

    @pytest.mark.asyncio
    async def test_json_file_not_supported(self, loader, tmp_path: Path):
        path = tmp_path / "data.json"
        path.write_text("{}", encoding="utf-8")

        with pytest.raises(IngestionError, match="JSON"):
            await loader.load_from_path(path)

    @pytest.mark.asyncio
    async def test_missing_path(self, loader, tmp_path: Path):
        with pytest.raises(IngestionError, match="does not exist"):
            await loader.load_from_path(tmp_path / "nope")

    @pytest.mark.asyncio
    async def test_directory_skips_failures_and_unsupported_files(
        self, loader, store, tmp_path: Path
    ):
        (tmp_path / "a.txt").write_text("From a.", encoding="utf-8")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.md").write_text("From b.", encoding="utf-8")
        (tmp_path / "c.csv").write_text("x,y", encoding="utf-8")
        (tmp_path / "empty.txt").write_text("  ", encoding="utf-8")

        report = await loader.load_from_path(tmp_path)

        assert report.files_processed == 2
        assert report.files_failed == 1
        assert report.chunks_stored == 2
        assert sorted(d.content for d in _stored_docs(store)) == ["From a.", "From b."]

    @pytest.mark.asyncio
    async def test_directory_continues_after_collaborator_failure(
        self, loader, store, tmp_path: Path
    ):
        (tmp_path / "a.txt").write_text("First.", encoding="utf-8")
        (tmp_path / "b.txt").write_text("Second.", encoding="utf-8")
        store.store_document.side_effect = [StorageError("db down"), None]

        report = await loader.load_from_path(tmp_path)

        assert report.files_processed == 1
        assert report.files_failed == 1


class TestCancellation:
    @pytest.mark.asyncio
    async def test_set_event_stops_before_work(self, store, embedder, tmp_path: Path):
        (tmp_path / "a.txt").write_text("Content.", encoding="utf-8")
        stop = asyncio.Event()
        stop.set()
        loader = DocumentLoader(store, embedder, stop_event=stop)

        with pytest.raises(IngestionCancelledError):
            await loader.load_from_path(tmp_path)

        embedder.embed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_in_flight_chunk_completes(self, store, embedder):
        stop = asyncio.Event()

        async def embed_then_stop(text):
            stop.set()
            return [0.1, 0.2]

        embedder.embed.side_effect = embed_then_stop
        loader = DocumentLoader(store, embedder, stop_event=stop)

        with pytest.raises(IngestionCancelledError):
            await loader.process_document("One.\n\nTwo.\n\nThree.", {})

        assert store.store_document.await_count == 1
