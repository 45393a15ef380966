"""OpenAI embeddings service."""

import numpy as np
from openai import OpenAI

from .config import config
from .exceptions import EmbeddingProviderError

logger = config.get_logger(__name__)


class EmbeddingService:
    """Handles OpenAI embeddings generation at a fixed dimension."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        dimension: int | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the EmbeddingService with OpenAI API key and model.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
            dimension: Vector length requested from the API. If None, uses
                config.EMBEDDING_DIMENSION.
            timeout: Per-request deadline in seconds. If None, uses
                config.EMBEDDING_TIMEOUT.
        """
        api_key = api_key or config.get_openai_api_key()
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key,
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
            timeout=timeout if timeout is not None else config.EMBEDDING_TIMEOUT,
        )
        self.model = model or config.EMBEDDING_MODEL
        self.dimension = dimension or config.EMBEDDING_DIMENSION

    def _to_vector(self, values: list[float]) -> np.ndarray:
        embedding = np.array(values, dtype=np.float64)
        if embedding.shape != (self.dimension,):
            msg = (
                f"Provider returned {embedding.shape[0]} dimensions, "
                f"expected {self.dimension}"
            )
            raise EmbeddingProviderError(msg)
        return embedding

    def get_embedding(self, text: str) -> np.ndarray:
        """Get embedding for a single text.

        Args:
            text: The input text to generate an embedding for.

        Returns:
            np.ndarray: The embedding vector for the input text.

        Raises:
            EmbeddingProviderError: If the API call fails or returns a vector
                of the wrong dimension.
        """
        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=text,
                dimensions=self.dimension,
            )
        except Exception as exc:
            logger.exception("Error generating embedding")
            msg = f"Embedding provider error: {exc}"
            raise EmbeddingProviderError(msg) from exc
        return self._to_vector(response.data[0].embedding)

    def get_embeddings_batch(
        self,
        texts: list[str],
        batch_size: int = 100,
    ) -> list[np.ndarray]:
        """Get embeddings for multiple texts in batches.

        Args:
            texts: List of input texts to generate embeddings for.
            batch_size: Number of texts to process in each batch.

        Returns:
            list[np.ndarray]: List of embedding vectors for the input texts.

        Raises:
            EmbeddingProviderError: If any batch fails.
        """
        embeddings = []

        for i in range(0, len(texts), batch_size):
            batch_texts = texts[i : i + batch_size]
            try:
                response = self.client.embeddings.create(
                    model=self.model,
                    input=batch_texts,
                    dimensions=self.dimension,
                )
            except Exception as exc:
                logger.exception("Error generating batch embeddings")
                msg = f"Embedding provider error: {exc}"
                raise EmbeddingProviderError(msg) from exc
            embeddings.extend(self._to_vector(data.embedding) for data in response.data)
            logger.info("Generated embeddings for batch %d", i // batch_size + 1)

        return embeddings
