"""Delivery of compiled archives."""

from fieldvault.export.channels import (
    DeliveryChannel,
    DeliveryOutcome,
    DeliveryResult,
    DownloadChannel,
    FileSaveChannel,
    HandoffChannel,
)
from fieldvault.export.dispatcher import DispatchReport, ExportDispatcher

__all__ = [
    "DeliveryChannel",
    "DeliveryOutcome",
    "DeliveryResult",
    "DownloadChannel",
    "FileSaveChannel",
    "HandoffChannel",
    "ExportDispatcher",
    "DispatchReport",
]
