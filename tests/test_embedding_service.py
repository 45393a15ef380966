"""Tests for EmbeddingService class."""

import os
from unittest.mock import patch

import numpy as np
import pytest
from openai import APIConnectionError

from ragcore import EmbeddingProviderError, EmbeddingService
from ragcore.config import config


def test_init_with_api_key(embedding_service_factory) -> None:
    service = embedding_service_factory(model="text-embedding-3-small")
    assert service.model == "text-embedding-3-small"
    assert service.client.api_key == "test-key"


def test_init_with_env_api_key() -> None:
    with patch.dict(os.environ, {"OPENAI_API_KEY": "env-key"}):
        service = EmbeddingService(model="text-embedding-3-small")
        assert service.client.api_key == "env-key"


def test_init_defaults(embedding_service_factory) -> None:
    service = embedding_service_factory()
    assert service.model == config.EMBEDDING_MODEL
    assert service.dimension == config.EMBEDDING_DIMENSION
    assert service.client.timeout == config.EMBEDDING_TIMEOUT


def test_init_with_timeout() -> None:
    service = EmbeddingService(api_key="test-key", timeout=2.5)
    assert service.client.timeout == 2.5


def test_get_embedding_success(
    openai_embeddings_api_mock, embedding_service, openai_response_factory
) -> None:
    openai_embeddings_api_mock.return_value = openai_response_factory([
        [0.1, 0.2, 0.3, 0.4, 0.5]
    ])

    result = embedding_service.get_embedding("test text")

    openai_embeddings_api_mock.assert_called_once_with(
        model="text-embedding-3-small",
        input="test text",
        dimensions=5,
    )
    assert isinstance(result, np.ndarray)
    np.testing.assert_array_equal(result, np.array([0.1, 0.2, 0.3, 0.4, 0.5]))


def test_get_embedding_api_error(openai_embeddings_api_mock, embedding_service) -> None:
    openai_embeddings_api_mock.side_effect = RuntimeError("API Error")

    with pytest.raises(EmbeddingProviderError, match="API Error") as exc_info:
        embedding_service.get_embedding("test text")

    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_get_embedding_wrong_dimension(
    openai_embeddings_api_mock, embedding_service, openai_response_factory
) -> None:
    openai_embeddings_api_mock.return_value = openai_response_factory([
        [0.1, 0.2, 0.3]
    ])

    with pytest.raises(EmbeddingProviderError, match="expected 5"):
        embedding_service.get_embedding("test text")


def test_get_embeddings_batch_with_batching(
    openai_embeddings_api_mock, embedding_service, openai_response_factory
) -> None:
    openai_embeddings_api_mock.side_effect = [
        openai_response_factory([[0.1] * 5, [0.2] * 5]),
        openai_response_factory([[0.3] * 5]),
    ]
    texts = ["text1", "text2", "text3"]

    results = embedding_service.get_embeddings_batch(texts, batch_size=2)

    assert openai_embeddings_api_mock.call_count == 2
    openai_embeddings_api_mock.assert_any_call(
        model="text-embedding-3-small",
        input=["text1", "text2"],
        dimensions=5,
    )
    openai_embeddings_api_mock.assert_any_call(
        model="text-embedding-3-small",
        input=["text3"],
        dimensions=5,
    )
    assert len(results) == 3
    for value, result in zip([0.1, 0.2, 0.3], results, strict=True):
        np.testing.assert_array_equal(result, np.full(5, value))


def test_get_embeddings_batch_empty_list(
    openai_embeddings_api_mock, embedding_service
) -> None:
    results = embedding_service.get_embeddings_batch([])
    openai_embeddings_api_mock.assert_not_called()
    assert results == []


def test_get_embeddings_batch_partial_failure(
    openai_embeddings_api_mock, embedding_service, openai_response_factory
) -> None:
    openai_embeddings_api_mock.side_effect = [
        openai_response_factory([[0.1] * 5]),
        RuntimeError("Second batch failed"),
    ]

    with pytest.raises(EmbeddingProviderError, match="Second batch failed"):
        embedding_service.get_embeddings_batch(["a", "b", "c"], batch_size=1)

    assert openai_embeddings_api_mock.call_count == 2


# Integration test that requires a real OpenAI API key
@pytest.mark.skipif(
    not os.getenv("OPENAI_API_KEY"),
    reason="OPENAI_API_KEY environment variable not set",
)
def test_real_api_single_embedding() -> None:
    """Test single embedding generation with real OpenAI API."""
    service = EmbeddingService(model="text-embedding-3-small")

    try:
        embedding = service.get_embedding("QRIBAR is a digital menu.")
    except EmbeddingProviderError as exc:  # pragma: no cover - network dependent
        if isinstance(exc.__cause__, APIConnectionError):
            pytest.skip(f"OpenAI not reachable: {exc!s}")
        raise
    else:
        assert embedding.shape == (config.EMBEDDING_DIMENSION,)
        norm = np.linalg.norm(embedding)
        assert 0.99 <= norm <= 1.01
