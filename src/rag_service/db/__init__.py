"""
Database Package

Provides SQLAlchemy async session management, model definitions and the
pgvector-backed document store for PostgreSQL.
"""

from .session import create_engine, create_session_factory
from .models import Base, DocumentRecord, EmbeddingRecord
from .vector_store import PostgresVectorStore, VectorDB

__all__ = [
    "create_engine",
    "create_session_factory",
    "Base",
    "DocumentRecord",
    "EmbeddingRecord",
    "PostgresVectorStore",
    "VectorDB",
]
