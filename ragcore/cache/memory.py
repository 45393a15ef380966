"""In-memory TTL cache for embeddings with optional durable backup."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import numpy as np

from ragcore.cache.base import (
    BYTES_PER_CHAR,
    BYTES_PER_FLOAT,
    BackupRecord,
    CacheBackup,
    glob_to_regex,
)
from ragcore.config import config
from ragcore.exceptions import CacheValidationError
from ragcore.models import CacheEntry, CacheStats

if TYPE_CHECKING:
    from collections.abc import Callable

logger = config.get_logger(__name__)

WILDCARDS = frozenset("*?")


class EmbeddingCache:
    """TTL-scoped key -> embedding store.

    The local map is the source of truth. When a backup is configured, writes
    go through to it and local misses fall back to it; any backup failure is
    logged and ignored. Hit/miss counters only measure the local map, so an
    entry restored from the backup still counts as a miss.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        dimension: int | None = None,
        backup: CacheBackup | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: Default time-to-live for entries.
            dimension: Required embedding length. If None, uses
                config.EMBEDDING_DIMENSION.
            backup: Optional durable store mirrored by the cache.
            clock: Source of the current time in epoch seconds.

        Raises:
            CacheValidationError: If ``ttl_seconds`` is not positive.
        """
        if ttl_seconds <= 0:
            msg = "TTL must be positive"
            raise CacheValidationError(msg)

        self.ttl_seconds = float(ttl_seconds)
        self.dimension = dimension or config.EMBEDDING_DIMENSION
        self.backup = backup
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, timestamp: float, ttl: float, now: float) -> bool:  # noqa: PLR6301
        return now - timestamp > ttl

    def _lookup(self, key: str, *, count: bool) -> CacheEntry | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                if not self._is_expired(entry.timestamp, entry.ttl, now):
                    if count:
                        self._hits += 1
                    return replace(entry)
                del self._entries[key]
                logger.debug("Cache entry %s expired", key)
            if count:
                self._misses += 1

        if self.backup is not None:
            return self._restore_from_backup(key, now)
        return None

    def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key``, or None if missing or expired."""  # noqa: DOC201
        return self._lookup(key, count=True)

    def has(self, key: str) -> bool:
        """Check for a live entry without affecting hit/miss statistics."""  # noqa: DOC201
        return self._lookup(key, count=False) is not None

    def set(
        self,
        key: str,
        embedding: np.ndarray | list[float],
        metadata: dict[str, Any] | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        """Store an embedding under ``key``, replacing any previous entry.

        Raises:
            CacheValidationError: If the key is blank, the embedding has the
                wrong length, or ``ttl_seconds`` is not positive.
        """
        if not key or not key.strip():
            msg = "Key cannot be empty"
            raise CacheValidationError(msg)
        if ttl_seconds is not None and ttl_seconds <= 0:
            msg = "TTL must be positive"
            raise CacheValidationError(msg)

        vector = np.array(embedding, dtype=np.float64)
        if vector.shape != (self.dimension,):
            msg = f"Embedding must be {self.dimension} dimensions"
            raise CacheValidationError(msg)
        vector.setflags(write=False)

        now = self._clock()
        ttl = float(ttl_seconds) if ttl_seconds is not None else self.ttl_seconds
        entry = CacheEntry(
            key=key,
            embedding=vector,
            timestamp=now,
            expires_at=now + ttl,
            ttl=ttl,
            metadata=metadata,
        )
        with self._lock:
            self._entries[key] = entry

        if self.backup is not None:
            self._best_effort(
                "sync",
                key,
                self.backup.upsert,
                key,
                vector,
                now,
                metadata,
                ttl,
            )

    def invalidate(self, key_pattern: str) -> bool:
        """Remove an exact key, or every key matching a ``*``/``?`` glob.

        Returns:
            True if at least one local entry was removed.
        """
        with self._lock:
            if key_pattern in self._entries:
                removed = [key_pattern]
            else:
                regex = glob_to_regex(key_pattern)
                removed = [key for key in self._entries if regex.match(key)]
            for key in removed:
                del self._entries[key]

        if self.backup is not None:
            backup_keys = list(removed)
            if not backup_keys and not WILDCARDS.intersection(key_pattern):
                backup_keys.append(key_pattern)
            for key in backup_keys:
                self._best_effort("delete", key, self.backup.delete, key)

        if removed:
            logger.info(
                "Invalidated %d cache entries for %s", len(removed), key_pattern
            )
        return bool(removed)

    def delete(self, key: str) -> None:
        """Remove a single key from the local cache and the backup."""
        with self._lock:
            self._entries.pop(key, None)
        if self.backup is not None:
            self._best_effort("delete", key, self.backup.delete, key)

    def clear(self) -> None:
        """Remove every entry and reset hit/miss counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

        if self.backup is not None:
            self._best_effort("clear", "*", self.backup.delete_all)
        logger.info("Embedding cache cleared")

    def get_stats(self) -> CacheStats:
        """Compute usage statistics from counters and live entries.

        Returns:
            CacheStats snapshot.
        """
        with self._lock:
            hits, misses = self._hits, self._misses
            entries = list(self._entries.values())

        total_requests = hits + misses
        memory_size = 0
        for entry in entries:
            memory_size += self.dimension * BYTES_PER_FLOAT
            memory_size += len(entry.key) * BYTES_PER_CHAR
            if entry.metadata:
                memory_size += (
                    len(json.dumps(entry.metadata, default=str)) * BYTES_PER_CHAR
                )

        timestamps = [entry.timestamp for entry in entries]
        return CacheStats(
            total_entries=len(entries),
            hits=hits,
            misses=misses,
            hit_rate=hits / total_requests if total_requests > 0 else 0.0,
            memory_size=memory_size,
            oldest_entry=min(timestamps) if timestamps else None,
            newest_entry=max(timestamps) if timestamps else None,
        )

    def _restore_from_backup(self, key: str, now: float) -> CacheEntry | None:
        record: BackupRecord | None = self._best_effort(
            "restore", key, self.backup.get, key
        )
        if record is None:
            return None

        ttl = float(record.ttl) if record.ttl else self.ttl_seconds
        if self._is_expired(record.timestamp, ttl, now):
            self._best_effort("delete", key, self.backup.delete, key)
            return None

        vector = np.array(record.embedding, dtype=np.float64)
        if vector.shape != (self.dimension,):
            logger.warning("Ignoring backup entry %s with wrong dimension", key)
            return None
        vector.setflags(write=False)

        entry = CacheEntry(
            key=record.key,
            embedding=vector,
            timestamp=record.timestamp,
            expires_at=record.timestamp + ttl,
            ttl=ttl,
            metadata=record.metadata,
        )
        with self._lock:
            current = self._entries.get(key)
            if current is not None and not self._is_expired(
                current.timestamp, current.ttl, self._clock()
            ):
                return replace(current)
            self._entries[key] = entry
        logger.debug("Restored cache entry %s from backup", key)
        return replace(entry)

    @staticmethod
    def _best_effort(
        action: str, key: str, func: Callable[..., Any], *args: Any
    ) -> Any:
        try:
            return func(*args)
        except Exception:  # noqa: BLE001
            logger.warning(
                "Failed to %s cache backup for %s", action, key, exc_info=True
            )
            return None
