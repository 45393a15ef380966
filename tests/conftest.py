"""Test configuration and fixtures for ragcore tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test doubles
- Mock OpenAI API responses
- EmbeddingService fixtures
- Cache and backup fixtures
- Indexer and orchestrator factories
"""

import hashlib
import re
from unittest.mock import Mock, patch

import numpy as np
import pytest

from ragcore import (
    EmbeddingCache,
    EmbeddingService,
    FallbackHandler,
    RAGIndexer,
    RAGOrchestrator,
    SQLiteCacheBackup,
    WordChunker,
)
from ragcore.cache import BackupRecord


class TestConstants:
    """Centralized test constants to avoid repetition across test files."""

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_OPENAI_MODEL = "text-embedding-3-small"
    EMBEDDING_DIMENSION = 768

    # Chunking Configuration
    CHUNK_SIZE = 500
    CHUNK_OVERLAP = 50
    SMALL_CHUNK_SIZE = 10
    SMALL_CHUNK_OVERLAP = 2

    # Cache Configuration
    CACHE_TTL = 60.0
    START_TIME = 1_700_000_000.0


class MockEmbeddingService:
    """Deterministic bag-of-words embeddings for testing without API calls.

    Each lowercase word is hashed into one of ``dimension`` buckets, so texts
    sharing words have a positive cosine similarity and unrelated texts are
    (almost always) orthogonal.
    """

    def __init__(self, dimension: int = TestConstants.EMBEDDING_DIMENSION) -> None:
        self.dimension = dimension
        self.calls: list[str] = []

    def get_embedding(self, text: str) -> np.ndarray:
        self.calls.append(text)
        vector = np.zeros(self.dimension, dtype=np.float64)
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.sha256(word.encode("utf-8")).hexdigest()[:8], 16)
            vector[bucket % self.dimension] += 1.0
        norm = np.linalg.norm(vector)
        return vector / norm if norm else vector


class FailingEmbeddingService(MockEmbeddingService):
    """Mock service that fails once ``fail_after`` embeddings were produced."""

    def __init__(self, fail_after: int = 0) -> None:
        super().__init__()
        self.fail_after = fail_after

    def get_embedding(self, text: str) -> np.ndarray:
        if len(self.calls) >= self.fail_after:
            msg = "quota exceeded"
            raise RuntimeError(msg)
        return super().get_embedding(text)


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = TestConstants.START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryBackup:
    """Dictionary-backed cache backup that records every call."""

    def __init__(self) -> None:
        self.records: dict[str, BackupRecord] = {}
        self.deleted: list[str] = []

    def upsert(self, key, embedding, timestamp, metadata, ttl) -> None:
        self.records[key] = BackupRecord(
            key=key,
            embedding=np.array(embedding),
            timestamp=timestamp,
            metadata=metadata,
            ttl=ttl,
        )

    def get(self, key):
        return self.records.get(key)

    def delete(self, key) -> None:
        self.deleted.append(key)
        self.records.pop(key, None)

    def delete_all(self) -> None:
        self.records.clear()


class BrokenBackup:
    """Backup whose every operation fails."""

    def upsert(self, *args) -> None:
        msg = "backup unavailable"
        raise ConnectionError(msg)

    def get(self, key):
        msg = "backup unavailable"
        raise ConnectionError(msg)

    def delete(self, key) -> None:
        msg = "backup unavailable"
        raise ConnectionError(msg)

    def delete_all(self) -> None:
        msg = "backup unavailable"
        raise ConnectionError(msg)


def make_vector(*values: float) -> np.ndarray:
    """Embed a few leading values into a full-dimension vector."""
    vector = np.zeros(TestConstants.EMBEDDING_DIMENSION, dtype=np.float64)
    vector[: len(values)] = values
    return vector


def words(count: int, prefix: str = "word") -> str:
    return " ".join(f"{prefix}{i}" for i in range(count))


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


@pytest.fixture
def openai_embeddings_api_mock():
    """Patch OpenAI embeddings.create and return the mock."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def openai_response_factory():
    """Factory building mock embeddings API responses."""
    return create_mock_openai_response


@pytest.fixture
def embedding_service_factory():
    """Factory for creating EmbeddingService instances with test settings."""

    def _create_service(api_key=None, model=None, dimension=None):  # noqa: ANN202
        return EmbeddingService(
            api_key=api_key or TestConstants.TEST_API_KEY,
            model=model,
            dimension=dimension,
        )

    return _create_service


@pytest.fixture
def embedding_service(embedding_service_factory):
    """EmbeddingService producing 5-dimensional vectors."""
    return embedding_service_factory(dimension=5)


@pytest.fixture
def mock_embedding_service():
    return MockEmbeddingService()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def in_memory_backup():
    return InMemoryBackup()


@pytest.fixture
def sqlite_backup(tmp_path):
    """SQLite backup stored in a temporary directory."""
    return SQLiteCacheBackup(tmp_path / "cache" / "embedding_cache.db")


@pytest.fixture
def embedding_cache_factory(fake_clock):
    """Factory for caches driven by the shared fake clock."""

    def _create_cache(
        ttl_seconds: float = TestConstants.CACHE_TTL,
        backup=None,
        dimension: int = TestConstants.EMBEDDING_DIMENSION,
    ) -> EmbeddingCache:
        return EmbeddingCache(
            ttl_seconds,
            dimension=dimension,
            backup=backup,
            clock=fake_clock,
        )

    return _create_cache


@pytest.fixture
def embedding_cache(embedding_cache_factory):
    return embedding_cache_factory()


@pytest.fixture
def indexer_factory(mock_embedding_service):
    """Factory for RAGIndexer instances with configurable chunk sizes."""

    def _create_indexer(
        service=None,
        chunk_size: int = TestConstants.CHUNK_SIZE,
        overlap: int = TestConstants.CHUNK_OVERLAP,
    ) -> RAGIndexer:
        return RAGIndexer(
            service or mock_embedding_service,
            chunker=WordChunker(chunk_size=chunk_size, overlap=overlap),
        )

    return _create_indexer


@pytest.fixture
def fallback_handler():
    return FallbackHandler()


@pytest.fixture
def orchestrator_factory(indexer_factory, embedding_cache_factory):
    """Factory for RAGOrchestrator instances backed by test doubles."""

    def _create_orchestrator(
        service=None,
        cache=None,
        **kwargs,
    ) -> RAGOrchestrator:
        return RAGOrchestrator(
            indexer=indexer_factory(service),
            cache=cache if cache is not None else embedding_cache_factory(),
            **kwargs,
        )

    return _create_orchestrator


@pytest.fixture
def orchestrator(orchestrator_factory):
    return orchestrator_factory()


@pytest.fixture
def vector_factory():
    """Factory returning full-dimension vectors from a few leading values."""
    return make_vector


@pytest.fixture
def word_text():
    """Factory returning a text of ``count`` distinct words."""
    return words


@pytest.fixture
def failing_service_factory():
    """Factory for embedding services that fail after N successful calls."""
    return FailingEmbeddingService


@pytest.fixture
def broken_backup():
    return BrokenBackup()
