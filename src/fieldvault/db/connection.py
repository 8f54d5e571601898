"""SQLite connection layer."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from fieldvault.errors import StorageUnavailableError


class Database:
    """Per-project SQLite database holding the document, blob and config tables."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection with foreign keys + WAL enabled and return it.

        Raises:
            StorageUnavailableError: If the file cannot be opened.
        """
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
        except sqlite3.Error as exc:
            raise StorageUnavailableError(
                f"Cannot open database '{self.db_path}': {exc}"
            ) from exc
        return conn

    @contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        """Yield a short-lived connection; commit on success, always close.

        Any ``sqlite3.Error`` raised inside the block is re-raised as
        ``StorageUnavailableError`` after rolling back.
        """
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageUnavailableError(
                f"Transaction failed on '{self.db_path}': {exc}"
            ) from exc
        finally:
            conn.close()

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None
