"""
Storage Package

Pluggable persistence for the task ledger. The task store only ever calls
load/save on a StorageAdapter, so backends can be swapped via config.

Usage:
    from atomize.storage import get_storage

    storage = get_storage("json", {"path": "data/atomize.json"})
    records = storage.load()
"""

from __future__ import annotations

from typing import Any

from .base import StorageAdapter
from .json_file import JsonFileStorageAdapter
from .memory import MemoryStorageAdapter
from .sqlite import SqliteStorageAdapter

BACKENDS = ("memory", "json", "sqlite")


def get_storage(name: str, config: dict[str, Any] | None = None) -> StorageAdapter:
    """
    Get a storage adapter by name.

    Args:
        name: Backend name (memory, json, sqlite)
        config: Backend configuration; json and sqlite need "path"

    Returns:
        StorageAdapter instance

    Raises:
        ValueError: If the backend is unknown or missing its path
    """
    config = config or {}

    if name == "memory":
        return MemoryStorageAdapter()

    if name in ("json", "sqlite"):
        path = config.get("path")
        if not path:
            raise ValueError(f"Storage backend '{name}' requires a path")
        if name == "json":
            return JsonFileStorageAdapter(path)
        return SqliteStorageAdapter(path)

    raise ValueError(f"Unknown storage backend: {name}. Available: {list(BACKENDS)}")


__all__ = [
    "BACKENDS",
    "JsonFileStorageAdapter",
    "MemoryStorageAdapter",
    "SqliteStorageAdapter",
    "StorageAdapter",
    "get_storage",
]
