"""Storage health probe and background quota poller.

Display-only: a failing probe or an over-threshold reading is logged and
never blocks a save or an export.
"""

from __future__ import annotations

import logging
import shutil
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_WARN_PERCENT = 90.0


@dataclass(frozen=True)
class StorageHealth:
    quota: int  # bytes
    usage: int  # bytes
    percent: float

    @property
    def free(self) -> int:
        return max(0, self.quota - self.usage)

    def over(self, warn_percent: float = DEFAULT_WARN_PERCENT) -> bool:
        return self.percent > warn_percent


def probe_storage(path: Path | str) -> StorageHealth:
    """Return quota/usage for the filesystem holding *path*.

    *path* may not exist yet; the nearest existing parent is measured.
    """
    target = Path(path).resolve()
    while not target.exists() and target != target.parent:
        target = target.parent
    usage = shutil.disk_usage(target)
    percent = (usage.used / usage.total) * 100 if usage.total > 0 else 0.0
    return StorageHealth(quota=usage.total, usage=usage.used, percent=percent)


class StoragePoller:
    """Poll *probe* every *interval* seconds on a daemon thread.

    Args:
        probe: Zero-argument callable returning a ``StorageHealth``.
        interval: Seconds between polls.
        on_update: Called with each successful reading.
        warn_percent: Soft warning threshold.
    """

    def __init__(
        self,
        probe: Callable[[], StorageHealth],
        interval: float = 10.0,
        on_update: Callable[[StorageHealth], None] | None = None,
        warn_percent: float = DEFAULT_WARN_PERCENT,
    ) -> None:
        self._probe = probe
        self._interval = interval
        self._on_update = on_update
        self._warn_percent = warn_percent
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.latest: StorageHealth | None = None

    def poll_once(self) -> StorageHealth | None:
        """Take one reading. Probe failures are logged and return None."""
        try:
            health = self._probe()
        except Exception as exc:  # noqa: BLE001 - external collaborator
            logger.warning("Storage health probe failed: %s", exc)
            return None
        self.latest = health
        if health.over(self._warn_percent):
            logger.warning(
                "Storage %.1f%% full (%d of %d bytes)",
                health.percent,
                health.usage,
                health.quota,
            )
        if self._on_update is not None:
            self._on_update(health)
        return health

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="fieldvault-storage-poller", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self._interval)
