"""
Document Loader

Ingestion pipeline: read text from a file or directory tree, chunk it, embed
each chunk and persist every chunk as its own document.

Processing is strictly sequential. A failing chunk aborts its file; chunks
stored before the failure are kept. In directory mode a failing file is
logged and skipped, while an explicit single file propagates its error.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..chunking.chunker import ChunkingOptions, chunk_text
from ..chunking.metadata import build_chunk_metadata, build_file_metadata
from ..core.errors import (
    CollaboratorError,
    IngestionCancelledError,
    IngestionError,
    RAGError,
    ValidationError,
)
from ..db.vector_store import VectorDB
from ..documents.models import Document
from ..embeddings.embedder import EmbeddingService

logger = logging.getLogger("rag.loader")

SUPPORTED_EXTENSIONS = frozenset({".txt", ".md"})


@dataclass
class IngestionReport:
    files_processed: int = 0
    files_failed: int = 0
    chunks_stored: int = 0


class DocumentLoader:
    def __init__(
        self,
        store: VectorDB,
        embedder: EmbeddingService,
        chunking_options: Optional[ChunkingOptions] = None,
        stop_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.chunking_options = chunking_options or ChunkingOptions()
        self.stop_event = stop_event

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def load_from_path(
        self,
        path: Union[str, Path],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> IngestionReport:
        """
        Ingest a single file or every supported file beneath a directory.

        Raises
        ------
        IngestionError
            If the path does not exist, or (single-file mode) the file
            cannot be ingested.
        IngestionCancelledError
            If the stop event is set before the work completes.
        """
        target = Path(path)

        if not target.exists():
            raise IngestionError(f"path does not exist: {path}", source=str(path))

        if target.is_dir():
            return await self._load_directory(target, metadata)

        report = IngestionReport()
        report.chunks_stored = await self.load_file(target, metadata)
        report.files_processed = 1
        return report

    async def load_file(
        self,
        path: Union[str, Path],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """
        Ingest one file and return the number of chunks stored.
        """
        self._check_cancelled()

        file_path = Path(path)
        source = str(path)

        if file_path.suffix.lower() == ".json":
            raise IngestionError("JSON loading is not supported", source=source)

        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise IngestionError(
                f"failed to read file: {type(exc).__name__}",
                source=source,
            ) from exc

        file_meta = build_file_metadata(path, metadata)
        return await self.process_document(content, file_meta, source=source)

    async def process_document(
        self,
        content: str,
        metadata: Optional[Mapping[str, Any]] = None,
        source: Optional[str] = None,
    ) -> int:
        """
        Chunk, embed and store ``content``.

        Parameters
        ----------
        content : str
            Raw text of the document.

        metadata : Optional[Mapping[str, Any]]
            Base metadata copied into every chunk.

        source : Optional[str]
            Provenance attached to any ``IngestionError``.

        Returns
        -------
        int
            Number of chunks stored.
        """
        if not content or not content.strip():
            raise ValidationError(
                f"document is empty: {source}" if source else "document is empty"
            )

        chunks = chunk_text(content, self.chunking_options)
        total = len(chunks)
        logger.info(
            "Split %s into %d chunks (strategy=%s)",
            source or "document",
            total,
            self.chunking_options.strategy.value,
        )

        for index, chunk in enumerate(chunks):
            self._check_cancelled()

            chunk_meta: Dict[str, Any] = build_chunk_metadata(index, total, metadata)

            try:
                embedding = await self.embedder.embed(chunk)
            except CollaboratorError as exc:
                raise IngestionError(
                    f"failed to generate embedding for chunk {index}",
                    source=source,
                    chunk_index=index,
                ) from exc

            doc = Document.new(chunk, chunk_meta)

            try:
                await self.store.store_document(doc, embedding)
            except CollaboratorError as exc:
                raise IngestionError(
                    f"failed to store chunk {index}",
                    source=source,
                    chunk_index=index,
                ) from exc

            logger.debug("Stored chunk %d/%d as %s", index + 1, total, doc.id)

        return total

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_directory(
        self,
        root: Path,
        metadata: Optional[Mapping[str, Any]],
    ) -> IngestionReport:
        report = IngestionReport()

        for file_path in sorted(root.rglob("*")):
            if not file_path.is_file():
                continue
            if file_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
                continue

            self._check_cancelled()

            try:
                report.chunks_stored += await self.load_file(file_path, metadata)
            except IngestionCancelledError:
                raise
            except (RAGError, OSError) as exc:
                report.files_failed += 1
                logger.warning("Skipping %s: %s", file_path, exc)
                continue

            report.files_processed += 1

        logger.info(
            "Directory %s: %d files processed, %d failed, %d chunks stored",
            root,
            report.files_processed,
            report.files_failed,
            report.chunks_stored,
        )
        return report

    def _check_cancelled(self) -> None:
        if self.stop_event is not None and self.stop_event.is_set():
            raise IngestionCancelledError("ingestion cancelled")
