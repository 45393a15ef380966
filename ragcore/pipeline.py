"""Explicit construction of a fully wired RAG orchestrator."""

from pathlib import Path
from typing import cast

from .cache import BackupBackend, get_embedding_cache
from .config import config
from .document_processing import WordChunker
from .embeddings import EmbeddingService
from .fallback import FallbackHandler
from .indexing import RAGIndexer
from .orchestrator import RAGOrchestrator

logger = config.get_logger(__name__)


def build_rag_orchestrator(  # noqa: PLR0913,PLR0917
    openai_api_key: str | None = None,
    chunk_size: int | None = None,
    overlap: int | None = None,
    cache_ttl_seconds: float | None = None,
    cache_backup: str | None = None,
    cache_db_path: Path | None = None,
    embedding_service: EmbeddingService | None = None,
) -> RAGOrchestrator:
    """Build an orchestrator with its indexer, cache and fallback handler.

    Every argument left as None falls back to the matching ``config`` value.
    Callers own the returned instance; nothing is shared globally.

    Args:
        openai_api_key: OpenAI API key for the default embedding service.
        chunk_size: Words per chunk. If None, uses config.CHUNK_SIZE.
        overlap: Words shared by consecutive chunks. If None, uses
            config.CHUNK_OVERLAP.
        cache_ttl_seconds: Default cache TTL. If None, uses
            config.CACHE_TTL_SECONDS.
        cache_backup: Backup backend ("none" | "sqlite"). If None, uses
            config.CACHE_BACKUP.
        cache_db_path: SQLite backup path. If None, uses config.CACHE_DB_PATH.
        embedding_service: Provider to use instead of the OpenAI service.

    Returns:
        A ready-to-use RAGOrchestrator.
    """
    chunker = WordChunker(
        chunk_size=chunk_size if chunk_size is not None else config.CHUNK_SIZE,
        overlap=overlap if overlap is not None else config.CHUNK_OVERLAP,
    )
    service = embedding_service or EmbeddingService(api_key=openai_api_key)
    backend = cast(
        "BackupBackend",
        (cache_backup if cache_backup is not None else config.CACHE_BACKUP).lower(),
    )

    cache = get_embedding_cache(
        cache_ttl_seconds,
        backup=backend,
        db_path=cache_db_path,
    )
    logger.info("Using %s embedding cache backup", backend)

    return RAGOrchestrator(
        indexer=RAGIndexer(service, chunker=chunker),
        cache=cache,
        fallback_handler=FallbackHandler(),
        default_top_k=config.RAG_TOP_K,
        default_threshold=config.RAG_SIMILARITY_THRESHOLD,
        enable_cache=config.RAG_ENABLE_CACHE,
    )
