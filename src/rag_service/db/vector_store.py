"""
Vector Store

PostgreSQL + pgvector backed document storage and similarity search.

``VectorDB`` is the storage capability the pipelines depend on;
``PostgresVectorStore`` is its production implementation. Every operation
raises ``NotConnectedError`` before ``connect()`` and ``DocumentNotFoundError``
for unknown identifiers. Database failures surface as ``StorageError``.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from .models import Base, DocumentRecord, EmbeddingRecord, SCHEMA
from .session import create_engine, create_session_factory
from ..core.errors import DocumentNotFoundError, NotConnectedError, StorageError
from ..documents.models import Document, SearchResult, VectorQuery

logger = logging.getLogger("rag.db")

DEFAULT_LIST_LIMIT = 10


# ---------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------

class VectorDB(ABC):
    """
    Storage capability for documents and their embeddings.
    """

    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def store_document(self, doc: Document, embedding: Sequence[float]) -> None:
        """Persist a document and its embedding as one atomic unit."""

    @abstractmethod
    async def find_similar(self, query: VectorQuery) -> List[SearchResult]:
        """Return up to ``query.limit`` documents, most similar first."""

    @abstractmethod
    async def get_document(self, document_id: UUID) -> Document: ...

    @abstractmethod
    async def list_documents(
        self,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> List[Document]: ...

    @abstractmethod
    async def delete_document(self, document_id: UUID) -> None:
        """Delete a document; its embedding is removed with it."""


# ---------------------------------------------------------------------
# PostgreSQL Implementation
# ---------------------------------------------------------------------

class PostgresVectorStore(VectorDB):
    """
    PostgreSQL-backed vector store using pgvector cosine distance.
    """

    def __init__(
        self,
        database_url: str,
        dimensions: int,
        connect_timeout: float = 5.0,
        engine_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Parameters
        ----------
        database_url : str
            SQLAlchemy async URL (``postgresql+asyncpg://...``).

        dimensions : int
            Embedding length accepted by ``store_document``.

        connect_timeout : float
            Seconds allowed for the connectivity check in ``connect()``.

        engine_options : Optional[Dict[str, Any]]
            Extra keyword arguments for ``create_async_engine``.
        """
        self._database_url = database_url
        self._dimensions = dimensions
        self._connect_timeout = connect_timeout
        self._engine_options = engine_options or {}

        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._sessions is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Create the connection pool and verify the database answers.
        """
        engine = create_engine(self._database_url, **self._engine_options)

        try:
            await asyncio.wait_for(self._ping(engine), timeout=self._connect_timeout)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            await engine.dispose()
            raise StorageError(
                f"failed to connect to database: {type(exc).__name__}"
            ) from exc

        self._engine = engine
        self._sessions = create_session_factory(engine)
        logger.info("Successfully connected to the database")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None

    async def init_schema(self) -> None:
        """
        Create the pgvector extension, the ``rag`` schema and its tables.
        """
        engine = self._require_engine()
        try:
            async with engine.begin() as conn:
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
                await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}"))
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StorageError(
                f"failed to initialize schema: {type(exc).__name__}"
            ) from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def store_document(self, doc: Document, embedding: Sequence[float]) -> None:
        sessions = self._require_sessions()

        if len(embedding) != self._dimensions:
            raise StorageError(
                f"embedding has {len(embedding)} dimensions, expected {self._dimensions}"
            )

        now = datetime.now(timezone.utc)

        try:
            async with sessions() as session, session.begin():
                session.add(DocumentRecord.from_document(doc))
                await session.flush()
                session.add(
                    EmbeddingRecord(
                        document_id=doc.id,
                        embedding=[float(x) for x in embedding],
                        created_at=now,
                        updated_at=now,
                    )
                )
        except SQLAlchemyError as exc:
            raise StorageError(
                f"failed to store document: {type(exc).__name__}"
            ) from exc

    async def find_similar(self, query: VectorQuery) -> List[SearchResult]:
        """
        Rank documents by cosine similarity (``1 - cosine distance``).

        A positive ``query.threshold`` drops results at or below it.
        """
        sessions = self._require_sessions()

        distance = EmbeddingRecord.embedding.cosine_distance(query.vector)
        similarity = (1 - distance).label("similarity")

        stmt = (
            select(DocumentRecord, similarity)
            .join(EmbeddingRecord, EmbeddingRecord.document_id == DocumentRecord.id)
            .order_by(distance)
            .limit(query.limit)
        )

        if query.threshold > 0:
            stmt = stmt.where((1 - distance) > query.threshold)

        try:
            async with sessions() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"failed to execute similarity search: {type(exc).__name__}"
            ) from exc

        return [
            SearchResult(document=record.to_document(), similarity=float(score))
            for record, score in rows
        ]

    async def get_document(self, document_id: UUID) -> Document:
        sessions = self._require_sessions()

        try:
            async with sessions() as session:
                record = await session.get(DocumentRecord, document_id)
        except SQLAlchemyError as exc:
            raise StorageError(
                f"failed to get document: {type(exc).__name__}"
            ) from exc

        if record is None:
            raise DocumentNotFoundError(f"document not found: {document_id}")

        return record.to_document()

    async def list_documents(
        self,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> List[Document]:
        """
        Return documents newest first.
        """
        sessions = self._require_sessions()

        if limit <= 0:
            limit = DEFAULT_LIST_LIMIT
        offset = max(offset, 0)

        stmt = (
            select(DocumentRecord)
            .order_by(DocumentRecord.created_at.desc())
            .limit(limit)
            .offset(offset)
        )

        try:
            async with sessions() as session:
                result = await session.execute(stmt)
                records = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"failed to list documents: {type(exc).__name__}"
            ) from exc

        return [record.to_document() for record in records]

    async def delete_document(self, document_id: UUID) -> None:
        sessions = self._require_sessions()

        try:
            async with sessions() as session, session.begin():
                result = await session.execute(
                    delete(DocumentRecord).where(DocumentRecord.id == document_id)
                )
                deleted = result.rowcount
        except SQLAlchemyError as exc:
            raise StorageError(
                f"failed to delete document: {type(exc).__name__}"
            ) from exc

        if deleted == 0:
            raise DocumentNotFoundError(f"document not found: {document_id}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _ping(engine: AsyncEngine) -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise NotConnectedError("database not connected")
        return self._engine

    def _require_sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            raise NotConnectedError("database not connected")
        return self._sessions
