"""
RAG Service Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and provides a test-friendly application
factory.

Design Goals
------------
- Settings loaded once at startup and passed to every component
- Collaborators built in the lifespan and attached to ``app.state``
- Centralized router registration
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from .config import get_settings
from .core.errors import (
    RAGError,
    rag_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from .core.log_config import configure_logging
from .db.vector_store import PostgresVectorStore
from .embeddings.embedder import GeminiEmbedder
from .llm.client import GeminiClient
from .service.rag import RAGService

from .api import (
    document_routes,
    health_routes,
    search_routes,
)


logger = logging.getLogger("rag.app")


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Build collaborators on startup and release them on shutdown.

    Missing configuration or an unreachable database aborts startup.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting rag-service")

    api_key = settings.gemini_api_key.get_secret_value()
    embedder = GeminiEmbedder(
        api_key=api_key,
        model=settings.gemini_embedding_model,
        base_url=settings.gemini_base_url,
        dimensions=settings.embedding_dimensions,
    )
    generator = GeminiClient(
        api_key=api_key,
        model=settings.gemini_text_model,
        base_url=settings.gemini_base_url,
    )

    store = PostgresVectorStore(
        settings.database_url,
        dimensions=settings.embedding_dimensions,
    )
    await store.connect()

    app.state.settings = settings
    app.state.store = store
    app.state.rag_service = RAGService(store, embedder, generator)

    try:
        yield
    finally:
        logger.info("Shutting down rag-service")
        await store.close()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="rag-service",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(RAGError, rag_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(document_routes.router)
    app.include_router(search_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "rag_service.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
