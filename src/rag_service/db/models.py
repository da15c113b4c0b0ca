"""
SQLAlchemy Models

Defines the database schema (PostgreSQL schema ``rag``) for:
- Documents (text content + JSONB metadata)
- Embeddings (pgvector column, one per document, cascade-deleted)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, MetaData, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from pgvector.sqlalchemy import Vector

from ..documents.models import Document

SCHEMA = "rag"


class Base(DeclarativeBase):
    """Base class for all models."""
    metadata = MetaData(schema=SCHEMA)


# ---------------------------------------------------------------------
# Document Model
# ---------------------------------------------------------------------

class DocumentRecord(Base):
    """
    A stored document or chunk.
    """
    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[Optional[dict]] = mapped_column(
        "metadata",
        JSONB,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    @classmethod
    def from_document(cls, doc: Document) -> "DocumentRecord":
        return cls(
            id=doc.id,
            content=doc.content,
            metadata_=dict(doc.metadata),
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )

    def to_document(self) -> Document:
        return Document(
            id=self.id,
            content=self.content,
            metadata=self.metadata_ or {},
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


# ---------------------------------------------------------------------
# Embedding Model
# ---------------------------------------------------------------------

class EmbeddingRecord(Base):
    """
    Vector embedding owned by exactly one document.

    Uses pgvector for similarity search. The column is declared without a
    fixed dimension; the store validates vector length on insert.
    """
    __tablename__ = "embeddings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.documents.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    embedding = Column(Vector(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
