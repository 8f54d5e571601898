"""Autosave controller: debounce edits into the document store.

States::

    saved ──mutation──▶ unsaved ──quiet window──▶ saving ──ok──▶ saved
                           ▲                         │
                           └────────write failed─────┘

The controller owns the only handle to the live document. Every save,
including the forced flush at termination, serializes whatever that handle
points at *when the write happens*, so a flush never writes a stale copy.
``flush()`` cancels the pending debounce timer before writing; the timer
and the flush therefore never race to write the same revision.
"""

from __future__ import annotations

import atexit
import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Protocol, TypeVar

from fieldvault.db.models import ProjectDocument
from fieldvault.db.repository import DocumentStore
from fieldvault.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.4

T = TypeVar("T")


class SaveStatus(str, Enum):
    SAVED = "saved"
    UNSAVED = "unsaved"
    SAVING = "saving"


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]
StatusListener = Callable[[SaveStatus], None]


def thread_timer(interval: float, callback: Callable[[], None]) -> Timer:
    """Default timer: a daemon ``threading.Timer``."""
    timer = threading.Timer(interval, callback)
    timer.daemon = True
    return timer


class AutosaveController:
    """Tracks dirty state of the project document and writes it back.

    Args:
        store: Document store to write into.
        key: Document slot name.
        debounce: Quiet window in seconds before a save is issued.
        timer_factory: ``factory(interval, callback) -> Timer``; tests pass
            a manual timer so coalescing can be checked without sleeping.
        document: Initial document. Defaults to a new empty project.
    """

    def __init__(
        self,
        store: DocumentStore,
        key: str,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        timer_factory: TimerFactory | None = None,
        document: ProjectDocument | None = None,
    ) -> None:
        if debounce <= 0:
            raise ValueError(f"debounce must be > 0, got {debounce}")
        self._store = store
        self._key = key
        self._debounce = debounce
        self._timer_factory = timer_factory or thread_timer
        self._document = document if document is not None else ProjectDocument()

        self._status = SaveStatus.SAVED
        self._revision = 0
        self._saved_revision = 0
        self._timer: Timer | None = None
        self._lock = threading.RLock()
        self._write_lock = threading.Lock()
        self._listeners: list[StatusListener] = []
        self._exit_hook_installed = False

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def document(self) -> ProjectDocument:
        return self._document

    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def key(self) -> str:
        return self._key

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def add_listener(self, listener: StatusListener) -> None:
        """Call *listener(status)* on every status change."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Mutation entry points
    # ------------------------------------------------------------------

    def load(self) -> ProjectDocument:
        """Replace the live document with the stored one (or a new project).

        The replacement is tagged as just loaded and does not schedule a
        save. Storage errors propagate.
        """
        stored = self._store.get_document(self._key)
        document = stored if stored is not None else ProjectDocument()
        self.set_document(document, just_loaded=True)
        return document

    def set_document(self, document: ProjectDocument, *, just_loaded: bool = False) -> None:
        """Swap in a new live document."""
        with self._lock:
            self._document = document
            if just_loaded:
                self._cancel_timer()
                self._saved_revision = self._revision
                self._set_status(SaveStatus.SAVED)
                return
        self.mark_changed()

    def mutate(self, edit: Callable[[ProjectDocument], T]) -> T:
        """Apply *edit* to the live document and schedule a save."""
        result = edit(self._document)
        self.mark_changed()
        return result

    def mark_changed(self) -> None:
        """Record an in-place mutation and restart the debounce window."""
        with self._lock:
            self._revision += 1
            self._cancel_timer()
            self._timer = self._timer_factory(self._debounce, self._on_timer)
            self._timer.start()
            self._set_status(SaveStatus.UNSAVED)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def flush(self) -> bool:
        """Write the live document now, bypassing the debounce window.

        Returns:
            True if the stored document is current afterwards.
        """
        with self._lock:
            self._cancel_timer()
            if self._revision == self._saved_revision:
                return True
        logger.info("Flushing unsaved project document '%s'", self._key)
        return self._save()

    def install_exit_hook(self) -> None:
        """Register ``flush`` to run at interpreter exit (once)."""
        if not self._exit_hook_installed:
            atexit.register(self.flush)
            self._exit_hook_installed = True

    def close(self) -> bool:
        """Flush and drop the exit hook. Returns the flush result."""
        ok = self.flush()
        if self._exit_hook_installed:
            atexit.unregister(self.flush)
            self._exit_hook_installed = False
        return ok

    def _on_timer(self) -> None:
        with self._lock:
            self._timer = None
        self._save()

    def _save(self) -> bool:
        with self._write_lock:
            with self._lock:
                if self._revision == self._saved_revision:
                    self._set_status(SaveStatus.SAVED)
                    return True
                revision = self._revision
                self._set_status(SaveStatus.SAVING)
            try:
                self._store.put_document(self._key, self._document)
            except StorageUnavailableError as exc:
                logger.error("Autosave of '%s' failed: %s", self._key, exc)
                with self._lock:
                    self._set_status(SaveStatus.UNSAVED)
                return False
            with self._lock:
                self._saved_revision = max(self._saved_revision, revision)
                if self._revision == revision:
                    self._set_status(SaveStatus.SAVED)
                else:
                    self._set_status(SaveStatus.UNSAVED)
            return True

    # ------------------------------------------------------------------

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _set_status(self, status: SaveStatus) -> None:
        if status is self._status:
            return
        self._status = status
        for listener in list(self._listeners):
            listener(status)
