"""Shared types for the embedding cache and its durable backups."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    import numpy as np

BYTES_PER_FLOAT = 8
BYTES_PER_CHAR = 2


@dataclass
class BackupRecord:
    """A cache entry as stored by a durable backup."""

    key: str
    embedding: np.ndarray
    timestamp: float
    metadata: dict[str, Any] | None
    ttl: float | None


class CacheBackup(Protocol):
    """Key-value store that mirrors the in-memory embedding cache.

    Implementations may raise on any call; the cache treats every backup
    operation as best effort.
    """

    def upsert(
        self,
        key: str,
        embedding: np.ndarray,
        timestamp: float,
        metadata: dict[str, Any] | None,
        ttl: float | None,
    ) -> None: ...

    def get(self, key: str) -> BackupRecord | None: ...

    def delete(self, key: str) -> None: ...

    def delete_all(self) -> None: ...


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a ``*``/``?`` glob into an anchored regular expression.

    Every other character matches literally.

    Returns:
        Compiled pattern that must match the whole key.
    """
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile(r"\A" + "".join(parts) + r"\Z", re.DOTALL)
