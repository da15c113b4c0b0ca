"""
Database Session Management

Builds the async SQLAlchemy engine and session factory for PostgreSQL.
Both are created by ``PostgresVectorStore.connect()``.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_engine(database_url: str, **options: Any) -> AsyncEngine:
    params = {
        "echo": False,  # Set True for SQL debugging
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
    }
    params.update(options)
    return create_async_engine(database_url, **params)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
