"""Embedding cache, durable backups and factories."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from ragcore.config import config

from .base import BackupRecord, CacheBackup, glob_to_regex
from .memory import EmbeddingCache
from .sqlite_backup import SQLiteCacheBackup

if TYPE_CHECKING:
    from pathlib import Path

BackupBackend = Literal["none", "sqlite"]


def get_cache_backup(
    backend: BackupBackend = "none",
    *,
    db_path: Path | None = None,
) -> SQLiteCacheBackup | None:
    """Return a configured cache backup, or None when backups are disabled.

    Raises:
        ValueError: If an unsupported backend is requested.
    """
    backend_value = backend.lower()

    if backend_value == "none":
        return None

    if backend_value == "sqlite":
        return SQLiteCacheBackup(
            db_path=db_path if db_path is not None else config.CACHE_DB_PATH,
        )

    msg = f"Unsupported cache backup backend: {backend}"
    raise ValueError(msg)


def get_embedding_cache(
    ttl_seconds: float | None = None,
    *,
    backup: BackupBackend | None = None,
    db_path: Path | None = None,
    dimension: int | None = None,
) -> EmbeddingCache:
    """Return an embedding cache wired to the configured backup.

    Args:
        ttl_seconds: Default TTL. If None, uses config.CACHE_TTL_SECONDS.
        backup: Backup backend name. If None, uses config.CACHE_BACKUP.
        db_path: Backup database path. If None, uses config.CACHE_DB_PATH.
        dimension: Embedding length. If None, uses config.EMBEDDING_DIMENSION.

    Returns:
        A ready-to-use EmbeddingCache.
    """
    backend = backup if backup is not None else config.CACHE_BACKUP
    return EmbeddingCache(
        ttl_seconds if ttl_seconds is not None else config.CACHE_TTL_SECONDS,
        dimension=dimension,
        backup=get_cache_backup(backend, db_path=db_path),  # type: ignore[arg-type]
    )


__all__ = [
    "BackupBackend",
    "BackupRecord",
    "CacheBackup",
    "EmbeddingCache",
    "SQLiteCacheBackup",
    "get_cache_backup",
    "get_embedding_cache",
    "glob_to_regex",
]
