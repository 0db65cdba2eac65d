"""Subscription storage backends.

Example:
    >>> from feedwatch.storage import create_store
    >>> type(create_store("memory")).__name__
    'MemoryStore'
"""

from __future__ import annotations

from pathlib import Path

from feedwatch.core.exceptions import ConfigurationError
from feedwatch.storage.memory import MemoryStore
from feedwatch.storage.sqlite import SQLiteStore


def create_store(
    backend: str = "memory",
    path: str | Path | None = None,
) -> MemoryStore | SQLiteStore:
    """Create a store by backend name.

    Args:
        backend: "memory" or "sqlite".
        path: Database path for SQLite.

    Raises:
        ConfigurationError: For unknown backends.
    """
    if backend == "memory":
        return MemoryStore()
    if backend == "sqlite":
        return SQLiteStore(path or "feedwatch.db")
    raise ConfigurationError(f"Unknown storage backend: {backend!r}")


__all__ = ["MemoryStore", "SQLiteStore", "create_store"]
