"""SQLite-backed durable store for cached embeddings."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import numpy as np

from ragcore.cache.base import BackupRecord
from ragcore.config import config

logger = config.get_logger(__name__)


class SQLiteCacheBackup:
    """Persists embedding cache entries in a single SQLite table.

    Embeddings are stored as raw float64 bytes next to their dimension.
    Writes are upserts keyed by cache key, so repeating a write is harmless.
    """

    backend = "sqlite"

    def __init__(self, db_path: Path = Path("data/embedding_cache.db")) -> None:
        """Initialize the backup and ensure the schema exists.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self._create_tables()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _create_tables(self) -> None:
        """Create the cache table if it doesn't exist."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS embedding_cache (
                    key TEXT PRIMARY KEY,
                    embedding BLOB NOT NULL,
                    dimension INTEGER NOT NULL,
                    timestamp REAL NOT NULL,
                    metadata TEXT,
                    ttl REAL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cursor.execute(
                (
                    "CREATE INDEX IF NOT EXISTS idx_embedding_cache_timestamp "
                    "ON embedding_cache(timestamp)"
                ),
            )
            conn.commit()
            logger.info("Embedding cache table created/verified")

    def upsert(
        self,
        key: str,
        embedding: np.ndarray,
        timestamp: float,
        metadata: dict[str, Any] | None,
        ttl: float | None,
    ) -> None:
        """Insert or replace the entry stored under ``key``."""
        vector = np.asarray(embedding, dtype=np.float64)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO embedding_cache
                    (key, embedding, dimension, timestamp, metadata, ttl)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    embedding = excluded.embedding,
                    dimension = excluded.dimension,
                    timestamp = excluded.timestamp,
                    metadata = excluded.metadata,
                    ttl = excluded.ttl,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    key,
                    vector.tobytes(),
                    int(vector.shape[0]),
                    float(timestamp),
                    json.dumps(metadata, default=str) if metadata is not None else None,
                    ttl,
                ),
            )
            conn.commit()

    def get(self, key: str) -> BackupRecord | None:
        """Fetch the entry stored under ``key``.

        Returns:
            BackupRecord if present; otherwise None.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                """
                SELECT key, embedding, dimension, timestamp, metadata, ttl
                FROM embedding_cache
                WHERE key = ?
                """,
                (key,),
            )
            row = cursor.fetchone()

        if row is None:
            return None

        row_key, blob, dimension, timestamp, metadata_json, ttl = row
        embedding = np.frombuffer(blob, dtype=np.float64, count=int(dimension)).copy()
        return BackupRecord(
            key=row_key,
            embedding=embedding,
            timestamp=float(timestamp),
            metadata=json.loads(metadata_json) if metadata_json else None,
            ttl=float(ttl) if ttl is not None else None,
        )

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM embedding_cache WHERE key = ?", (key,))
            conn.commit()

    def delete_all(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM embedding_cache")
            conn.commit()
        logger.info("Embedding cache backup cleared")

    def count(self) -> int:
        """Return the number of stored entries."""  # noqa: DOC201
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM embedding_cache").fetchone()
        return int(row[0])
