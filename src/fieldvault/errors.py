"""Exception hierarchy for fieldvault.

Missing blobs and cancelled deliveries are not errors and have no exception
here: the archive compiler reports missing photos in its result, and
delivery channels return ``DeliveryOutcome.CANCELLED``.
"""

from __future__ import annotations


class FieldVaultError(Exception):
    """Base class for all fieldvault errors."""


class StorageUnavailableError(FieldVaultError):
    """The local database could not be opened or a transaction failed."""


class ArchiveCompilationError(FieldVaultError):
    """Serializing the export archive failed. Stored data is untouched."""


class ExportFailedError(FieldVaultError):
    """Every delivery channel failed and none was cancelled.

    Attributes:
        failures: ``(channel_name, reason)`` pairs in attempt order.
    """

    def __init__(self, failures: list[tuple[str, str]]) -> None:
        self.failures = failures
        if failures:
            detail = "; ".join(f"{name}: {reason}" for name, reason in failures)
        else:
            detail = "no delivery channel is available"
        super().__init__(f"Export failed: {detail}")
