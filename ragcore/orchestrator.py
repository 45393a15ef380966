"""RAG orchestration: indexing, cached query embedding, ranking and fallback."""

from __future__ import annotations

import hashlib
import threading
from typing import TYPE_CHECKING, Any

import numpy as np

from .config import config
from .exceptions import IndexingError, UnsupportedOperationError
from .fallback import FallbackHandler
from .models import (
    GENERAL_CATEGORY,
    CacheStats,
    DocumentChunk,
    FallbackContext,
    FallbackStats,
    RAGDocument,
    RAGSearchResult,
)
from .similarity import cosine_similarity_matrix

if TYPE_CHECKING:
    from .cache import EmbeddingCache
    from .indexing import RAGIndexer

logger = config.get_logger(__name__)

CLEAR_ALL_PATTERN = "*"
CONTEXT_SEPARATOR = "\n\n---\n\n"


def chunk_cache_key(source: str, chunk_index: int) -> str:
    return f"chunk_{source}_{chunk_index}"


def query_cache_key(query: str) -> str:
    digest = hashlib.sha256(query.encode("utf-8")).hexdigest()
    return f"query_{digest[:32]}"


class RAGOrchestrator:
    """Coordinates the indexer, embedding cache and fallback handler.

    Indexed chunks live in memory and every search scans all of them. The
    chunk list and the cache are shared between callers; locks are never
    held while the embedding provider is running.
    """

    def __init__(  # noqa: PLR0913
        self,
        indexer: RAGIndexer,
        cache: EmbeddingCache,
        fallback_handler: FallbackHandler | None = None,
        *,
        default_top_k: int = 5,
        default_threshold: float = 0.7,
        enable_cache: bool = True,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            indexer: Chunks and embeds documents, and embeds queries.
            cache: Embedding cache for queries and indexed chunks.
            fallback_handler: Handler used when nothing relevant is found.
                A fresh FallbackHandler is created if None.
            default_top_k: Maximum number of chunks returned by a search.
            default_threshold: Minimum similarity for a chunk to be returned.
            enable_cache: Whether searches and indexing use the cache by default.
        """
        self.indexer = indexer
        self.cache = cache
        self.fallback_handler = fallback_handler or FallbackHandler()
        self.default_top_k = default_top_k
        self.default_threshold = default_threshold
        self.enable_cache = enable_cache
        self._chunks: list[DocumentChunk] = []
        self._lock = threading.Lock()

    @property
    def indexed_chunk_count(self) -> int:
        with self._lock:
            return len(self._chunks)

    def index_documents(self, documents: list[RAGDocument]) -> list[DocumentChunk]:
        """Index documents grouped by source and make them searchable.

        The call is all-or-nothing: chunks become searchable only after every
        source group has been embedded at the cache dimension.

        Returns:
            The new chunks, grouped by source in first-seen order.

        Raises:
            IndexingError: If embedding fails or returns the wrong dimension.
        """
        grouped: dict[str, list[str]] = {}
        for document in documents:
            grouped.setdefault(document.source, []).append(document.content)

        new_chunks: list[DocumentChunk] = []
        for source, contents in grouped.items():
            new_chunks.extend(self.indexer.index_documents(source, contents))
        self._check_dimensions(new_chunks)

        if self.enable_cache:
            for chunk in new_chunks:
                self.cache.set(
                    chunk_cache_key(chunk.metadata.source, chunk.metadata.chunk_index),
                    chunk.embedding,
                    {
                        "source": chunk.metadata.source,
                        "chunk_index": chunk.metadata.chunk_index,
                    },
                )

        with self._lock:
            self._chunks.extend(new_chunks)

        logger.info(
            "Indexed %d documents from %d sources into %d chunks",
            len(documents),
            len(grouped),
            len(new_chunks),
        )
        return new_chunks

    def search(
        self,
        query: str,
        *,
        top_k: int | None = None,
        similarity_threshold: float | None = None,
        use_cache: bool | None = None,
        source: str | None = None,
    ) -> RAGSearchResult:
        """Rank indexed chunks against a query, falling back when none qualify.

        Args:
            query: Free-text user query.
            top_k: Maximum chunks to return. Defaults to ``default_top_k``.
            similarity_threshold: Minimum cosine similarity. Defaults to
                ``default_threshold``.
            use_cache: Look up / store the query embedding in the cache.
                Defaults to ``enable_cache``.
            source: Only consider chunks from this source.

        Returns:
            RAGSearchResult with ranked chunks, or a fallback response.

        Raises:
            ValueError: If ``top_k`` is smaller than 1.
        """
        top_k = self.default_top_k if top_k is None else top_k
        threshold = (
            self.default_threshold
            if similarity_threshold is None
            else similarity_threshold
        )
        use_cache = self.enable_cache if use_cache is None else use_cache
        if top_k < 1:
            msg = "top_k must be at least 1"
            raise ValueError(msg)

        if not query or not query.strip():
            logger.info("Empty query, using fallback")
            return self._fallback(query or "", source)

        query_embedding, cache_hit = self._embed_query(query, use_cache=use_cache)

        with self._lock:
            candidates = [
                chunk
                for chunk in self._chunks
                if source is None or chunk.metadata.source == source
            ]

        ranked = self._rank(query_embedding, candidates, threshold, top_k)
        if not ranked:
            logger.info(
                "No chunks above threshold %.2f among %d candidates",
                threshold,
                len(candidates),
            )
            return self._fallback(query, source)

        logger.info(
            "Found %d relevant chunks (best %.4f, cache_hit=%s)",
            len(ranked),
            ranked[0][1],
            cache_hit,
        )
        return RAGSearchResult(
            chunks=[chunk for chunk, _ in ranked],
            relevance_scores=[score for _, score in ranked],
            total_found=len(ranked),
            cache_hit=cache_hit,
            used_fallback=False,
        )

    def get_context(self, query: str, **options: Any) -> str:
        """Render search results as a context block for a prompt.

        Returns:
            Ranked chunks annotated with relevance and source, or the fallback
            message when nothing relevant was found.
        """
        result = self.search(query, **options)

        if result.used_fallback and result.fallback_response is not None:
            return result.fallback_response.message

        blocks = []
        for i, (chunk, score) in enumerate(
            zip(result.chunks, result.relevance_scores, strict=True)
        ):
            blocks.append(
                f"[Context {i + 1}] (Relevance: {score * 100:.1f}%)\n"
                f"Source: {chunk.metadata.source}\n"
                f"{chunk.text}"
            )
        return CONTEXT_SEPARATOR.join(blocks)

    def invalidate_cache(self, pattern: str) -> None:
        """Drop cached embeddings matching ``pattern``; ``*`` clears everything.

        Raises:
            UnsupportedOperationError: If the cache cannot invalidate by pattern.
        """
        if pattern == CLEAR_ALL_PATTERN:
            self.cache.clear()
            return

        invalidate = getattr(self.cache, "invalidate", None)
        if invalidate is None:
            msg = f"{type(self.cache).__name__} does not support pattern invalidation"
            raise UnsupportedOperationError(msg)
        invalidate(pattern)

    def reset(self) -> None:
        """Return to the initial state: empty cache, stats and index."""
        self.cache.clear()
        self.fallback_handler.reset_stats()
        with self._lock:
            self._chunks = []
        logger.info("RAG orchestrator reset")

    def get_cache_stats(self) -> CacheStats:
        return self.cache.get_stats()

    def get_fallback_stats(self) -> FallbackStats:
        return self.fallback_handler.get_stats()

    def _check_dimensions(self, chunks: list[DocumentChunk]) -> None:
        if not chunks:
            return
        expected = getattr(self.cache, "dimension", None)
        if expected is None:
            with self._lock:
                reference = self._chunks[0] if self._chunks else chunks[0]
            expected = reference.embedding.shape[0]

        for chunk in chunks:
            if chunk.embedding.shape != (expected,):
                msg = (
                    f"Embedding for chunk {chunk.metadata.chunk_index} of "
                    f"{chunk.metadata.source} has {chunk.embedding.shape[0]} "
                    f"dimensions, expected {expected}"
                )
                raise IndexingError(msg)

    def _embed_query(self, query: str, *, use_cache: bool) -> tuple[np.ndarray, bool]:
        if not use_cache:
            return self.indexer.generate_embedding(query), False

        cache_key = query_cache_key(query)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Query embedding cache hit for %s", cache_key)
            return cached.embedding, True

        embedding = self.indexer.generate_embedding(query)
        self.cache.set(cache_key, embedding, {"query": query})
        return embedding, False

    @staticmethod
    def _rank(
        query_embedding: np.ndarray,
        candidates: list[DocumentChunk],
        threshold: float,
        top_k: int,
    ) -> list[tuple[DocumentChunk, float]]:
        if not candidates:
            return []

        matrix = np.vstack([chunk.embedding for chunk in candidates])
        scores = cosine_similarity_matrix(query_embedding, matrix)
        order = np.argsort(-scores, kind="stable")
        ranked = [
            (candidates[idx], float(scores[idx]))
            for idx in order
            if scores[idx] >= threshold
        ]
        return ranked[:top_k]

    def _fallback(self, query: str, source: str | None) -> RAGSearchResult:
        fallback_response = self.fallback_handler.get_fallback(
            FallbackContext(
                query=query,
                category=source or GENERAL_CATEGORY,
                rag_results=[],
                confidence=0.0,
            )
        )
        return RAGSearchResult(
            chunks=[],
            relevance_scores=[],
            total_found=0,
            cache_hit=False,
            used_fallback=True,
            fallback_response=fallback_response,
        )
