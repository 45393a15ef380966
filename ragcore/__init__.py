"""ragcore - retrieval and fallback core for a knowledge-base chatbot."""

from .cache import EmbeddingCache, SQLiteCacheBackup, get_embedding_cache
from .document_processing import DocumentLoader, WordChunker
from .embeddings import EmbeddingService
from .exceptions import (
    CacheValidationError,
    EmbeddingProviderError,
    IndexingError,
    RAGCoreError,
    UnsupportedOperationError,
)
from .fallback import FallbackHandler
from .indexing import RAGIndexer, infer_category
from .models import (
    CacheEntry,
    CacheStats,
    ChunkMetadata,
    DocumentChunk,
    FallbackContext,
    FallbackResponse,
    FallbackStats,
    FallbackType,
    RAGDocument,
    RAGSearchResult,
    Tone,
)
from .orchestrator import RAGOrchestrator
from .pipeline import build_rag_orchestrator
from .similarity import cosine_similarity

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheValidationError",
    "ChunkMetadata",
    "DocumentChunk",
    "DocumentLoader",
    "EmbeddingCache",
    "EmbeddingProviderError",
    "EmbeddingService",
    "FallbackContext",
    "FallbackHandler",
    "FallbackResponse",
    "FallbackStats",
    "FallbackType",
    "IndexingError",
    "RAGCoreError",
    "RAGDocument",
    "RAGIndexer",
    "RAGOrchestrator",
    "RAGSearchResult",
    "SQLiteCacheBackup",
    "Tone",
    "UnsupportedOperationError",
    "WordChunker",
    "build_rag_orchestrator",
    "cosine_similarity",
    "get_embedding_cache",
    "infer_category",
]
