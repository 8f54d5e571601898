"""Keyed stores over the fieldvault database.

One class per container: ``DocumentStore`` (project document JSON),
``BlobStore`` (full-resolution photo bytes) and ``ConfigStore`` (small
persistent values). Each call opens its own connection through
``Database.session()`` so the stores can be shared with the autosave timer
thread and the archive fetch workers. A missing key returns ``None``; only
an unusable database raises (``StorageUnavailableError``).
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from fieldvault.db.connection import Database
from fieldvault.db.models import ProjectDocument


class DocumentStore:
    """Storage for the project document (metadata only, never binaries)."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def put_document(self, key: str, doc: ProjectDocument) -> None:
        """Upsert *doc* under *key*.

        Args:
            key: Document slot name (one live project per key).
            doc: Project document to serialize as JSON.
        """
        body = json.dumps(doc.to_dict(), ensure_ascii=False)
        with self._db.session() as conn:
            conn.execute(
                """
                INSERT INTO documents (key, body) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    body = excluded.body,
                    updated_at = datetime('now')
                """,
                (key, body),
            )

    def get_document(self, key: str) -> ProjectDocument | None:
        """Return the document stored under *key*, or None."""
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE key = ?", (key,)
            ).fetchone()
        return ProjectDocument.from_dict(json.loads(row["body"])) if row else None

    def get_updated_at(self, key: str) -> str | None:
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT updated_at FROM documents WHERE key = ?", (key,)
            ).fetchone()
        return row["updated_at"] if row else None

    def delete_document(self, key: str) -> None:
        with self._db.session() as conn:
            conn.execute("DELETE FROM documents WHERE key = ?", (key,))


class BlobStore:
    """Full-resolution photo bytes keyed by photo record id."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def put_blob(self, blob_id: str, data: bytes) -> None:
        """Store *data* under *blob_id*, replacing any previous bytes."""
        with self._db.session() as conn:
            conn.execute(
                """
                INSERT INTO blobs (id, data, size) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    size = excluded.size
                """,
                (blob_id, bytes(data), len(data)),
            )

    def get_blob(self, blob_id: str) -> bytes | None:
        """Return the bytes stored under *blob_id*, or None if absent."""
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT data FROM blobs WHERE id = ?", (blob_id,)
            ).fetchone()
        return bytes(row["data"]) if row else None

    def has_blob(self, blob_id: str) -> bool:
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT 1 FROM blobs WHERE id = ?", (blob_id,)
            ).fetchone()
        return row is not None

    def delete_blob(self, blob_id: str) -> None:
        with self._db.session() as conn:
            conn.execute("DELETE FROM blobs WHERE id = ?", (blob_id,))

    def list_blob_ids(self) -> list[str]:
        """Return all blob ids in insertion order."""
        with self._db.session() as conn:
            rows = conn.execute("SELECT id FROM blobs ORDER BY rowid").fetchall()
        return [r["id"] for r in rows]

    def total_blob_bytes(self) -> int:
        with self._db.session() as conn:
            row = conn.execute("SELECT COALESCE(SUM(size), 0) FROM blobs").fetchone()
        return int(row[0])

    def clear_blobs(self) -> None:
        with self._db.session() as conn:
            conn.execute("DELETE FROM blobs")

    def prune_orphans(self, referenced_ids: Iterable[str]) -> int:
        """Delete blobs no photo record references. Returns the number removed."""
        keep = set(referenced_ids)
        orphans = [blob_id for blob_id in self.list_blob_ids() if blob_id not in keep]
        if not orphans:
            return 0
        placeholders = ",".join("?" * len(orphans))
        with self._db.session() as conn:
            cur = conn.execute(
                f"DELETE FROM blobs WHERE id IN ({placeholders})", orphans
            )
        return cur.rowcount


class ConfigStore:
    """Primary (transactional) tier for small config entries.

    Values are any JSON-serializable scalar or list.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def put_config(self, key: str, value: Any) -> None:
        with self._db.session() as conn:
            conn.execute(
                """
                INSERT INTO config (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = datetime('now')
                """,
                (key, json.dumps(value)),
            )

    def get_config(self, key: str) -> Any | None:
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT value FROM config WHERE key = ?", (key,)
            ).fetchone()
        return json.loads(row["value"]) if row else None

    def delete_config(self, key: str) -> None:
        with self._db.session() as conn:
            conn.execute("DELETE FROM config WHERE key = ?", (key,))


def reset_project(db: Database, document_key: str) -> None:
    """Drop the project document and every blob in one transaction.

    Config entries (device identity, entitlement) survive a reset.
    """
    with db.session() as conn:
        conn.execute("DELETE FROM documents WHERE key = ?", (document_key,))
        conn.execute("DELETE FROM blobs")
