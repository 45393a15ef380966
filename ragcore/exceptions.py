"""Exception hierarchy for ragcore."""


class RAGCoreError(Exception):
    """Base class for all ragcore errors."""


class EmbeddingProviderError(RAGCoreError):
    """The embedding provider failed to produce a vector."""


class IndexingError(RAGCoreError):
    """A batch of documents could not be indexed."""


class CacheValidationError(RAGCoreError, ValueError):
    """Invalid input to the embedding cache (key, dimension or TTL)."""


class UnsupportedOperationError(RAGCoreError, NotImplementedError):
    """The requested operation is not supported by this implementation."""
