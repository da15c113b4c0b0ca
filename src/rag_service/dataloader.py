"""
Data Loader CLI

Ingests a file or a directory of text files into the vector store.

    rag-dataloader --dir ./docs --strategy sentence --chunk-size 800

Exit codes: 0 on success, 1 on failure, 130 when interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import time
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .chunking.chunker import ChunkingOptions, ChunkingStrategy
from .config import Settings, load_settings
from .core.errors import ConfigurationError, IngestionCancelledError, RAGError
from .core.log_config import configure_logging
from .db.vector_store import PostgresVectorStore
from .embeddings.embedder import GeminiEmbedder
from .ingestion.loader import DocumentLoader

logger = logging.getLogger("rag.dataloader")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rag-dataloader",
        description="Load text documents into the RAG vector store.",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--dir", help="directory to load (.txt and .md, recursive)")
    source.add_argument("--file", help="single file to load")

    parser.add_argument(
        "--strategy",
        choices=[s.value for s in ChunkingStrategy],
        default=None,
        help="chunking strategy (default: CHUNK_STRATEGY)",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="maximum chunk size in characters (default: CHUNK_SIZE)",
    )
    parser.add_argument(
        "--chunk-overlap",
        type=int,
        default=None,
        help="overlap between chunks in characters (default: CHUNK_OVERLAP)",
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="create the pgvector extension, schema and tables before loading",
    )
    parser.add_argument("--log-level", default=None, help="logging level")
    return parser


def chunking_options_from_args(args: argparse.Namespace, settings: Settings) -> ChunkingOptions:
    """
    Command-line values win over settings; settings fill the gaps.
    """
    chunk_size = args.chunk_size if args.chunk_size is not None else settings.chunk_size
    overlap = args.chunk_overlap if args.chunk_overlap is not None else settings.chunk_overlap

    try:
        return ChunkingOptions(
            strategy=args.strategy or settings.chunk_strategy,
            max_chunk_size=chunk_size,
            chunk_overlap=overlap,
        )
    except PydanticValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err["loc"])
        raise ConfigurationError(f"Invalid chunking options: {fields}") from exc


def base_metadata(now: Optional[datetime] = None) -> dict:
    now = now or datetime.now()
    return {
        "loaded_by": "data_loader",
        "batch_id": now.strftime("%Y%m%d-%H%M%S"),
    }


async def run_loader(args: argparse.Namespace, settings: Settings) -> int:
    options = chunking_options_from_args(args, settings)

    store = PostgresVectorStore(
        settings.database_url,
        dimensions=settings.embedding_dimensions,
    )
    embedder = GeminiEmbedder(
        api_key=settings.gemini_api_key.get_secret_value(),
        model=settings.gemini_embedding_model,
        base_url=settings.gemini_base_url,
        dimensions=settings.embedding_dimensions,
    )

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    await store.connect()
    try:
        if args.init_schema:
            await store.init_schema()
            logger.info("Database schema initialized")

        loader = DocumentLoader(store, embedder, options, stop_event=stop_event)
        target = args.dir or args.file

        started = time.monotonic()
        report = await loader.load_from_path(target, base_metadata())
        elapsed = time.monotonic() - started

        logger.info(
            "Loaded %d files (%d failed), %d chunks stored in %.2fs",
            report.files_processed,
            report.files_failed,
            report.chunks_stored,
            elapsed,
        )
    finally:
        await store.close()

    return EXIT_OK


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop, stop_event, sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops
            pass


def _request_stop(stop_event: asyncio.Event, sig: signal.Signals) -> None:
    logger.warning("Received %s, stopping after the current chunk", sig.name)
    stop_event.set()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except RAGError as exc:
        configure_logging(args.log_level or "INFO")
        logger.error("%s", exc)
        return EXIT_FAILURE

    configure_logging(args.log_level or settings.log_level)

    try:
        return asyncio.run(run_loader(args, settings))
    except IngestionCancelledError:
        logger.warning("Ingestion cancelled")
        return EXIT_CANCELLED
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_CANCELLED
    except RAGError as exc:
        logger.error("Data loading failed: %s", exc)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
