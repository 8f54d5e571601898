"""Atomic file writes and tolerant JSON reads."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write *data* to *path* atomically (temp → rename).

    Creates parent directories if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def atomic_write_json(path: Path, data: Any) -> None:
    payload = json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)
    atomic_write_bytes(path, payload.encode("utf-8"))


def read_json(path: Path) -> Any:
    """Return the parsed JSON in *path*.

    Raises:
        FileNotFoundError: *path* does not exist.
        ValueError: *path* is not valid JSON.
    """
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
