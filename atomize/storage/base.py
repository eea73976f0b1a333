"""
Storage Adapter Base Class

Every backend persists two things: the full list of serialized task
records, and the singleton preferences record. The task store rewrites the
whole collection on each mutation, so adapters only need load/save.

Serialized records are plain dicts with dates as ISO-8601 strings
(see atomize.tasks.models.Task.to_dict).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StorageAdapter(ABC):
    """Abstract persistence backend for the task ledger."""

    name: str = "base"

    @abstractmethod
    def load(self) -> list[dict[str, Any]]:
        """Return every stored task record (empty list when nothing is stored)."""

    @abstractmethod
    def save(self, records: list[dict[str, Any]]) -> None:
        """Replace the stored task records with the given list."""

    @abstractmethod
    def load_preferences(self) -> dict[str, Any] | None:
        """Return the stored preferences record, or None."""

    @abstractmethod
    def save_preferences(self, preferences: dict[str, Any]) -> None:
        """Replace the stored preferences record."""

    def close(self) -> None:
        """Release any held resources."""


__all__ = ["StorageAdapter"]
