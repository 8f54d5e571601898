"""Dual-tier config: database primary + flat file secondary, healed on read.

Reads consult the primary tier first and fall back to the secondary; a value
found in only one tier is copied into the other before it is returned.
Writes go to both tiers. A secondary failure is logged and ignored; a
primary failure is logged and survived as long as the secondary accepted
the value.

Only config entries go through here. The project document and blobs are
too large for the flat tier.
"""

from __future__ import annotations

import logging
from typing import Any

from fieldvault.db.repository import ConfigStore
from fieldvault.errors import StorageUnavailableError
from fieldvault.state.flatstore import FlatFileStore

logger = logging.getLogger(__name__)


class DualTierConfig:
    def __init__(self, primary: ConfigStore, secondary: FlatFileStore) -> None:
        self.primary = primary
        self.secondary = secondary

    def read(self, key: str) -> Any | None:
        """Return the value for *key* from whichever tier has it, or None."""
        primary_value = self._read_primary(key)
        secondary_value = self._read_secondary(key)

        if primary_value is not None:
            if secondary_value != primary_value:
                logger.info("Healing secondary config tier for '%s'", key)
                self._write_secondary(key, primary_value)
            return primary_value

        if secondary_value is not None:
            logger.info("Healing primary config tier for '%s'", key)
            try:
                self.primary.put_config(key, secondary_value)
            except StorageUnavailableError as exc:
                logger.warning("Primary config tier unavailable, heal skipped: %s", exc)
            return secondary_value

        return None

    def write(self, key: str, value: Any) -> None:
        """Commit *value* to both tiers.

        Raises:
            StorageUnavailableError: Neither tier accepted the value.
        """
        try:
            self.primary.put_config(key, value)
        except StorageUnavailableError as exc:
            logger.warning("Primary config tier write failed for '%s': %s", key, exc)
            try:
                self.secondary.set(key, value)
            except OSError as os_exc:
                raise StorageUnavailableError(
                    f"Config entry '{key}' could not be written to either tier"
                ) from os_exc
            return
        self._write_secondary(key, value)

    def delete(self, key: str) -> None:
        self.primary.delete_config(key)
        try:
            self.secondary.delete(key)
        except OSError as exc:
            logger.warning("Secondary config tier delete failed for '%s': %s", key, exc)

    # ------------------------------------------------------------------

    def _read_primary(self, key: str) -> Any | None:
        try:
            return self.primary.get_config(key)
        except StorageUnavailableError as exc:
            logger.warning("Primary config tier unavailable, using fallback: %s", exc)
            return None

    def _read_secondary(self, key: str) -> Any | None:
        try:
            return self.secondary.get(key)
        except OSError as exc:
            logger.warning("Secondary config tier unreadable: %s", exc)
            return None

    def _write_secondary(self, key: str, value: Any) -> None:
        try:
            self.secondary.set(key, value)
        except OSError as exc:
            logger.warning("Secondary config tier write failed for '%s': %s", key, exc)
