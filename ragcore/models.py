"""Data models for the RAG core."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

GENERAL_CATEGORY = "general"


@dataclass(frozen=True)
class ChunkMetadata:
    """Position and provenance of a chunk inside an indexing batch."""

    source: str
    chunk_index: int
    total_chunks: int
    category: str | None = None


@dataclass(frozen=True)
class DocumentChunk:
    """Represents a word-window slice of a document with its embedding."""

    text: str
    embedding: np.ndarray
    metadata: ChunkMetadata

    def __post_init__(self) -> None:
        embedding = np.array(self.embedding, dtype=np.float64)
        embedding.setflags(write=False)
        object.__setattr__(self, "embedding", embedding)


@dataclass
class RAGDocument:
    """A raw document submitted for indexing."""

    id: str
    content: str
    source: str
    metadata: dict[str, Any] | None = None


@dataclass
class CacheEntry:
    """A cached embedding with its expiry bookkeeping."""

    key: str
    embedding: np.ndarray
    timestamp: float
    expires_at: float
    ttl: float
    metadata: dict[str, Any] | None = None


@dataclass
class CacheStats:
    """Snapshot of embedding cache usage."""

    total_entries: int
    hits: int
    misses: int
    hit_rate: float
    memory_size: int
    oldest_entry: float | None
    newest_entry: float | None


class FallbackType(str, Enum):
    PREDEFINED = "predefined"
    CONTEXTUAL = "contextual"
    ESCALATION = "escalation"


class Tone(str, Enum):
    FORMAL = "formal"
    FAMILIAR = "familiar"


@dataclass
class FallbackContext:
    """Inputs to a single fallback decision."""

    query: str = ""
    category: str = GENERAL_CATEGORY
    rag_results: list[Any] = field(default_factory=list)
    confidence: float = 0.0
    user_name: str | None = None
    previous_interactions: int = 0


@dataclass
class FallbackResponse:
    """Message and routing advice produced when retrieval has nothing to offer."""

    message: str
    type: FallbackType
    category: str
    should_escalate: bool
    action_suggestions: list[str]
    tone: Tone
    confidence: float
    escalation_reason: str | None = None


@dataclass
class FallbackStats:
    """Aggregate fallback counters for a handler instance."""

    total_fallbacks: int
    by_category: dict[str, int]
    total_escalations: int
    escalation_rate: float
    average_confidence: float


@dataclass
class RAGSearchResult:
    """Ranked chunks for a query, or the fallback used instead."""

    chunks: list[DocumentChunk]
    relevance_scores: list[float]
    total_found: int
    cache_hit: bool
    used_fallback: bool
    fallback_response: FallbackResponse | None = None
