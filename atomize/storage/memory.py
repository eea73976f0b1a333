"""In-process storage, used by tests and as a scratch backend."""

from __future__ import annotations

import copy
from typing import Any

from .base import StorageAdapter


class MemoryStorageAdapter(StorageAdapter):
    name = "memory"

    def __init__(self, records: list[dict[str, Any]] | None = None):
        self._records: list[dict[str, Any]] = copy.deepcopy(records or [])
        self._preferences: dict[str, Any] | None = None
        self.save_count = 0

    def load(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._records)

    def save(self, records: list[dict[str, Any]]) -> None:
        self._records = copy.deepcopy(records)
        self.save_count += 1

    def load_preferences(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._preferences)

    def save_preferences(self, preferences: dict[str, Any]) -> None:
        self._preferences = copy.deepcopy(preferences)
