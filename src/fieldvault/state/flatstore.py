"""Flat key-value file used as the secondary config tier.

A single JSON object on disk, rewritten atomically on every change. Lower
capacity than the database but it survives when the database file cannot be
opened, so it only ever holds small critical values.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fieldvault.jsonio import atomic_write_json, read_json

logger = logging.getLogger(__name__)


class FlatFileStore:
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        try:
            data = read_json(self.path)
        except FileNotFoundError:
            return {}
        except ValueError:
            logger.warning("Ignoring unreadable fallback store %s", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object fallback store %s", self.path)
            return {}
        return data

    def get(self, key: str) -> Any | None:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        """Persist *value* under *key*. OSError propagates to the caller."""
        data = self._load()
        data[key] = value
        atomic_write_json(self.path, data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            atomic_write_json(self.path, data)

    def keys(self) -> list[str]:
        return sorted(self._load())
