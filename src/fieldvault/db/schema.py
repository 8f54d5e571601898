"""Schema initialization and introspection."""

from __future__ import annotations

import sqlite3

CURRENT_VERSION = 3

# Entity containers, one table each.
CONTAINERS: tuple[str, ...] = ("documents", "blobs", "config")


def initialize(conn: sqlite3.Connection) -> None:
    """Initialize the database schema via the migration runner (idempotent)."""
    from fieldvault.db.migrations import run_migrations

    run_migrations(conn)


def list_containers(conn: sqlite3.Connection) -> list[str]:
    """Return the entity containers present in the database, in canonical order."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table'"
    ).fetchall()
    present = {r[0] for r in rows}
    return [name for name in CONTAINERS if name in present]
