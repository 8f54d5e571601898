"""Delivery channels for compiled archives.

A channel hands the archive bytes to the user somehow and reports one of
three outcomes: delivered, cancelled by the user, or failed. Cancellation is
a normal result, not an error.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from fieldvault.export.writer import unique_path, write_output

logger = logging.getLogger(__name__)

DEFAULT_SHARE_MAX_BYTES = 200 * 1024 * 1024
# Conventional exit status of a process interrupted by the user (SIGINT).
_CANCEL_EXIT_CODE = 130


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class DeliveryResult:
    outcome: DeliveryOutcome
    destination: str | None = None
    reason: str | None = None

    @classmethod
    def delivered(cls, destination: str) -> DeliveryResult:
        return cls(DeliveryOutcome.DELIVERED, destination=destination)

    @classmethod
    def cancelled(cls) -> DeliveryResult:
        return cls(DeliveryOutcome.CANCELLED)

    @classmethod
    def failed(cls, reason: str) -> DeliveryResult:
        return cls(DeliveryOutcome.FAILED, reason=reason)


class DeliveryChannel(Protocol):
    name: str

    def available(self, data: bytes, mime_type: str) -> bool: ...

    def deliver(self, data: bytes, suggested_name: str, mime_type: str) -> DeliveryResult: ...


class FileSaveChannel:
    """Write straight to a user-chosen directory.

    Args:
        output_dir: Target directory; ``None`` makes the channel unavailable.
        confirm_overwrite: ``confirm(path) -> bool`` asked when the target
            exists. Declining cancels the export.
    """

    name = "file"

    def __init__(
        self,
        output_dir: Path | None,
        confirm_overwrite: Callable[[Path], bool] | None = None,
    ) -> None:
        self.output_dir = output_dir
        self._confirm = confirm_overwrite or (lambda _path: False)

    def available(self, data: bytes, mime_type: str) -> bool:
        return self.output_dir is not None

    def deliver(self, data: bytes, suggested_name: str, mime_type: str) -> DeliveryResult:
        if self.output_dir is None:
            return DeliveryResult.failed("no output directory configured")
        target = self.output_dir / suggested_name
        if target.exists() and not self._confirm(target):
            return DeliveryResult.cancelled()
        try:
            write_output(target, data)
        except OSError as exc:
            return DeliveryResult.failed(str(exc))
        return DeliveryResult.delivered(str(target))


class HandoffChannel:
    """Hand the archive to an external share command (``command <path>``).

    The payload is written to a temp file first. Exit status 130 means the
    user dismissed the share dialog. A delivered file belongs to the share
    command, which may still be reading it after it exits; a temp directory
    the channel created is removed when the handoff is cancelled or fails.
    """

    name = "share"

    def __init__(
        self,
        command: str | None,
        max_bytes: int = DEFAULT_SHARE_MAX_BYTES,
        staging_dir: Path | None = None,
    ) -> None:
        self._argv = shlex.split(command) if command else []
        self._max_bytes = max_bytes
        self._staging_dir = staging_dir

    def available(self, data: bytes, mime_type: str) -> bool:
        if not self._argv or shutil.which(self._argv[0]) is None:
            return False
        return len(data) <= self._max_bytes

    def deliver(self, data: bytes, suggested_name: str, mime_type: str) -> DeliveryResult:
        if self._staging_dir is not None:
            return self._handoff(self._staging_dir, data, suggested_name)
        staging = Path(tempfile.mkdtemp(prefix="fieldvault-share-"))
        result = self._handoff(staging, data, suggested_name)
        if result.outcome is not DeliveryOutcome.DELIVERED:
            shutil.rmtree(staging, ignore_errors=True)
        return result

    def _handoff(self, staging: Path, data: bytes, suggested_name: str) -> DeliveryResult:
        path = staging / suggested_name
        try:
            write_output(path, data)
            proc = subprocess.run(
                [*self._argv, str(path)],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            return DeliveryResult.failed(str(exc))
        if proc.returncode == 0:
            return DeliveryResult.delivered(str(path))
        if proc.returncode == _CANCEL_EXIT_CODE:
            return DeliveryResult.cancelled()
        detail = proc.stderr.strip() or f"exit status {proc.returncode}"
        return DeliveryResult.failed(f"share command failed: {detail}")


class DownloadChannel:
    """Universal fallback: drop the archive into the downloads folder."""

    name = "download"

    def __init__(self, download_dir: Path) -> None:
        self.download_dir = download_dir

    def available(self, data: bytes, mime_type: str) -> bool:
        return True

    def deliver(self, data: bytes, suggested_name: str, mime_type: str) -> DeliveryResult:
        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
            target = unique_path(self.download_dir, suggested_name)
            write_output(target, data)
        except OSError as exc:
            return DeliveryResult.failed(str(exc))
        return DeliveryResult.delivered(str(target))
