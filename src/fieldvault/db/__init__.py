"""fieldvault storage layer."""

from fieldvault.db.connection import Database
from fieldvault.db.migrations import MIGRATIONS, run_migrations
from fieldvault.db.repository import BlobStore, ConfigStore, DocumentStore
from fieldvault.db.schema import CURRENT_VERSION, initialize, list_containers

__all__ = [
    "Database",
    "initialize",
    "list_containers",
    "run_migrations",
    "MIGRATIONS",
    "CURRENT_VERSION",
    "DocumentStore",
    "BlobStore",
    "ConfigStore",
]
