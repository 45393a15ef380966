"""Document indexing: chunking plus one embedding per chunk."""

from typing import Protocol

import numpy as np

from .config import config
from .document_processing import WordChunker
from .exceptions import IndexingError
from .models import GENERAL_CATEGORY, ChunkMetadata, DocumentChunk

logger = config.get_logger(__name__)

# Checked in order against the lowercased source name.
CATEGORY_RULES: tuple[tuple[str, str], ...] = (
    ("qribar", "digital_product"),
    ("review", "online_reputation"),
)


class EmbeddingProvider(Protocol):
    def get_embedding(self, text: str) -> np.ndarray: ...


def infer_category(source: str) -> str:
    """Map a source name to its knowledge category.

    Returns:
        The first matching category, or ``general`` when nothing matches.
    """
    lowered = source.lower()
    for needle, category in CATEGORY_RULES:
        if needle in lowered:
            return category
    return GENERAL_CATEGORY


class RAGIndexer:
    """Chunks documents for a source and embeds every chunk."""

    def __init__(
        self,
        embedding_service: EmbeddingProvider,
        chunker: WordChunker | None = None,
    ) -> None:
        """Initialize the indexer.

        Args:
            embedding_service: Provider used to embed each chunk. Its
                ``get_embeddings_batch`` is used when it has one.
            chunker: Word chunker. If None, uses config.CHUNK_SIZE and
                config.CHUNK_OVERLAP.
        """
        self.embedding_service = embedding_service
        self.chunker = chunker or WordChunker(
            chunk_size=config.CHUNK_SIZE,
            overlap=config.CHUNK_OVERLAP,
        )

    def generate_embedding(self, text: str) -> np.ndarray:
        """Embed a single text with the configured provider."""  # noqa: DOC201
        return self.embedding_service.get_embedding(text)

    def index_documents(self, source: str, documents: list[str]) -> list[DocumentChunk]:
        """Chunk and embed a batch of documents belonging to one source.

        Chunk indexes run across the whole batch and ``total_chunks`` is the
        number of chunks produced by this call. Nothing is returned unless
        every chunk was embedded.

        Returns:
            The new chunks in document order.

        Raises:
            IndexingError: If the provider fails for any chunk.
        """
        windows = [window for doc in documents for window in self.chunker.windows(doc)]
        if not windows:
            return []

        embeddings = self._embed_windows(source, windows)

        category = infer_category(source)
        total_chunks = len(windows)
        chunks = [
            DocumentChunk(
                text=text,
                embedding=embedding,
                metadata=ChunkMetadata(
                    source=source,
                    chunk_index=index,
                    total_chunks=total_chunks,
                    category=category,
                ),
            )
            for index, (text, embedding) in enumerate(
                zip(windows, embeddings, strict=True)
            )
        ]

        logger.info(
            "Indexed %d documents from %s into %d chunks",
            len(documents),
            source,
            total_chunks,
        )
        return chunks

    def _embed_windows(self, source: str, windows: list[str]) -> list[np.ndarray]:
        batch = getattr(self.embedding_service, "get_embeddings_batch", None)
        if batch is not None:
            try:
                embeddings = list(batch(windows))
            except Exception as exc:
                logger.exception("Failed to embed chunks of source %s", source)
                msg = f"Failed to generate embeddings for {source}"
                raise IndexingError(msg) from exc
            if len(embeddings) != len(windows):
                msg = (
                    f"Provider returned {len(embeddings)} embeddings for "
                    f"{len(windows)} chunks of {source}"
                )
                raise IndexingError(msg)
            return embeddings

        embeddings = []
        for position, text in enumerate(windows):
            try:
                embeddings.append(self.generate_embedding(text))
            except Exception as exc:
                logger.exception(
                    "Failed to embed chunk %d of source %s", position, source
                )
                msg = f"Failed to generate embedding for chunk {position} of {source}"
                raise IndexingError(msg) from exc
        return embeddings
