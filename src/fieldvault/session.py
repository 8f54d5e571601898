"""One process's view of a fieldvault project.

Opens the database (running pending migrations), builds the three stores,
the dual-tier config and the autosave controller, and loads the live
project document. The forced flush is registered at interpreter exit when
the session opens and runs again on ``close()``. A storage poller watches
the database filesystem for the life of the session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fieldvault.archive.compiler import ArchiveCompiler
from fieldvault.autosave.controller import AutosaveController, TimerFactory
from fieldvault.config import FieldVaultConfig
from fieldvault.db.connection import Database
from fieldvault.db.models import ProjectDocument
from fieldvault.db.repository import BlobStore, ConfigStore, DocumentStore, reset_project
from fieldvault.db.schema import initialize
from fieldvault.health import StorageHealth, StoragePoller, probe_storage
from fieldvault.state.dual_tier import DualTierConfig
from fieldvault.state.entitlements import EntitlementLedger
from fieldvault.state.flatstore import FlatFileStore

logger = logging.getLogger(__name__)


@dataclass
class ProjectSession:
    cfg: FieldVaultConfig
    db: Database
    documents: DocumentStore
    blobs: BlobStore
    settings: DualTierConfig
    entitlements: EntitlementLedger
    autosave: AutosaveController
    poller: StoragePoller | None = None

    @classmethod
    def open(
        cls,
        cfg: FieldVaultConfig,
        *,
        timer_factory: TimerFactory | None = None,
        exit_hook: bool = True,
        poll_storage: bool = True,
    ) -> ProjectSession:
        """Open the project described by *cfg* and load its document.

        Raises:
            StorageUnavailableError: The database cannot be opened or read.
        """
        db = Database(cfg.db_path)
        db.db_path.parent.mkdir(parents=True, exist_ok=True)
        with db.session() as conn:
            initialize(conn)

        documents = DocumentStore(db)
        blobs = BlobStore(db)
        settings = DualTierConfig(ConfigStore(db), FlatFileStore(cfg.fallback_path))
        autosave = AutosaveController(
            documents,
            cfg.project.document_key,
            debounce=cfg.autosave.debounce_seconds,
            timer_factory=timer_factory,
        )
        autosave.load()
        if exit_hook:
            autosave.install_exit_hook()

        poller = None
        if poll_storage:
            db_path = cfg.db_path
            poller = StoragePoller(
                lambda: probe_storage(db_path),
                interval=cfg.health.poll_interval_s,
                warn_percent=cfg.health.warn_percent,
            )
            poller.start()

        return cls(
            cfg=cfg,
            db=db,
            documents=documents,
            blobs=blobs,
            settings=settings,
            entitlements=EntitlementLedger(settings),
            autosave=autosave,
            poller=poller,
        )

    @property
    def document(self) -> ProjectDocument:
        return self.autosave.document

    def compiler(self) -> ArchiveCompiler:
        return ArchiveCompiler(self.blobs, fetch_workers=self.cfg.archive.fetch_workers)

    def missing_blobs(self) -> list[str]:
        """Photo ids flagged as blob-backed whose blob is absent."""
        return sorted(
            blob_id
            for blob_id in self.document.referenced_blob_ids()
            if not self.blobs.has_blob(blob_id)
        )

    def repair_missing_blobs(self) -> int:
        """Clear ``has_full_res`` on photos whose blob is gone. Returns count."""
        missing = set(self.missing_blobs())
        if not missing:
            return 0

        def _clear(doc: ProjectDocument) -> None:
            for record in doc.records:
                for photo in record.photos:
                    if photo.id in missing:
                        photo.has_full_res = False

        self.autosave.mutate(_clear)
        logger.info("Cleared full-resolution flag on %d photos", len(missing))
        return len(missing)

    def remove_records(self, record_ids: list[str]) -> int:
        """Delete records and the blobs only they referenced."""
        orphaned = self.autosave.mutate(lambda doc: doc.remove_records(record_ids))
        for blob_id in orphaned:
            self.blobs.delete_blob(blob_id)
        return len(orphaned)

    def reset(self) -> None:
        """Drop the stored document and all blobs; start a fresh project."""
        reset_project(self.db, self.cfg.project.document_key)
        self.autosave.set_document(ProjectDocument(), just_loaded=True)

    def storage_health(self) -> StorageHealth:
        return probe_storage(self.cfg.db_path)

    def close(self) -> bool:
        try:
            return self.autosave.close()
        finally:
            if self.poller is not None:
                self.poller.stop()

    def __enter__(self) -> ProjectSession:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
