"""
Single-document JSON storage.

Layout:
    {"version": 1, "tasks": [...], "preferences": {...} | null}

Writes go to a temp file in the same directory and are moved into place
with os.replace, so a crash mid-write leaves the previous document intact.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from atomize.logging_config import get_logger

from .base import StorageAdapter

logger = get_logger(__name__)

FORMAT_VERSION = 1


class JsonFileStorageAdapter(StorageAdapter):
    name = "json"

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"version": FORMAT_VERSION, "tasks": [], "preferences": None}
        try:
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Corrupt task file {self.path}: {e}") from e

        # Bare list from older exports
        if isinstance(document, list):
            return {"version": FORMAT_VERSION, "tasks": document, "preferences": None}
        if not isinstance(document, dict):
            raise ValueError(f"Corrupt task file {self.path}: expected an object")
        document.setdefault("tasks", [])
        document.setdefault("preferences", None)
        return document

    def _write(self, document: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Wrote {len(document['tasks'])} tasks to {self.path}")

    def load(self) -> list[dict[str, Any]]:
        return list(self._read()["tasks"])

    def save(self, records: list[dict[str, Any]]) -> None:
        document = self._read()
        document["version"] = FORMAT_VERSION
        document["tasks"] = records
        self._write(document)

    def load_preferences(self) -> dict[str, Any] | None:
        return self._read()["preferences"]

    def save_preferences(self, preferences: dict[str, Any]) -> None:
        document = self._read()
        document["preferences"] = preferences
        self._write(document)
