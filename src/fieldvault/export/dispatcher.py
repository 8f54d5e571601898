"""Export dispatcher: try delivery channels in priority order.

Stops at the first channel that delivers or that the user cancels. Only
when every channel has failed (or none is available) is an
``ExportFailedError`` raised.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from fieldvault.errors import ExportFailedError
from fieldvault.export.channels import DeliveryChannel, DeliveryOutcome, DeliveryResult

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    channel: str
    result: DeliveryResult
    failures: list[tuple[str, str]] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.result.outcome is DeliveryOutcome.CANCELLED


class ExportDispatcher:
    def __init__(self, channels: Sequence[DeliveryChannel]) -> None:
        self.channels = list(channels)

    def dispatch(self, data: bytes, suggested_name: str, mime_type: str) -> DispatchReport:
        """Deliver *data* through the first willing channel.

        Raises:
            ExportFailedError: All channels failed or none was available.
        """
        failures: list[tuple[str, str]] = []
        for channel in self.channels:
            if not channel.available(data, mime_type):
                logger.debug("Delivery channel '%s' unavailable", channel.name)
                continue
            try:
                result = channel.deliver(data, suggested_name, mime_type)
            except Exception as exc:  # noqa: BLE001 - platform collaborator
                result = DeliveryResult.failed(f"{type(exc).__name__}: {exc}")

            if result.outcome is DeliveryOutcome.FAILED:
                reason = result.reason or "unknown error"
                logger.warning("Delivery via '%s' failed: %s", channel.name, reason)
                failures.append((channel.name, reason))
                continue

            if result.outcome is DeliveryOutcome.CANCELLED:
                logger.info("Delivery cancelled by user at '%s'", channel.name)
            return DispatchReport(channel=channel.name, result=result, failures=failures)

        raise ExportFailedError(failures)
