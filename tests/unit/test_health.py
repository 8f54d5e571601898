"""Tests for the storage health probe and poller."""

from __future__ import annotations

import logging
import threading
from collections import namedtuple
from unittest.mock import patch

import pytest

from fieldvault.health import StorageHealth, StoragePoller, probe_storage

_DiskUsage = namedtuple("_DiskUsage", "total used free")


def _usage(total, used):
    return _DiskUsage(total, used, total - used)


def test_probe_real_filesystem(tmp_path):
    health = probe_storage(tmp_path / "not-yet" / "db.sqlite")
    assert health.quota > 0
    assert 0.0 <= health.percent <= 100.0


def test_probe_percent(tmp_path):
    with patch("fieldvault.health.shutil.disk_usage", return_value=_usage(200, 50)):
        health = probe_storage(tmp_path)
    assert health == StorageHealth(quota=200, usage=50, percent=25.0)
    assert health.free == 150


def test_probe_zero_quota_is_zero_percent(tmp_path):
    with patch("fieldvault.health.shutil.disk_usage", return_value=_usage(0, 0)):
        assert probe_storage(tmp_path).percent == 0.0


def test_over_threshold():
    assert StorageHealth(100, 95, 95.0).over(90)
    assert not StorageHealth(100, 90, 90.0).over(90)


# ------------------------------------------------------------------
# Poller
# ------------------------------------------------------------------


def test_poll_once_reports_and_stores_latest():
    seen = []
    reading = StorageHealth(100, 10, 10.0)
    poller = StoragePoller(lambda: reading, on_update=seen.append)
    assert poller.poll_once() is reading
    assert poller.latest is reading
    assert seen == [reading]


def test_poll_once_failure_is_logged_not_raised(caplog):
    def broken():
        raise OSError("statvfs failed")

    poller = StoragePoller(broken)
    with caplog.at_level(logging.WARNING, logger="fieldvault"):
        assert poller.poll_once() is None
    assert "statvfs failed" in caplog.text
    assert poller.latest is None


def test_poll_once_warns_over_threshold(caplog):
    poller = StoragePoller(lambda: StorageHealth(100, 97, 97.0), warn_percent=90)
    with caplog.at_level(logging.WARNING, logger="fieldvault"):
        poller.poll_once()
    assert "97.0% full" in caplog.text


def test_start_and_stop():
    polled = threading.Event()

    def probe():
        polled.set()
        return StorageHealth(100, 1, 1.0)

    poller = StoragePoller(probe, interval=60)
    poller.start()
    try:
        assert polled.wait(5.0)
        assert poller.running
    finally:
        poller.stop(timeout=5.0)
    assert not poller.running


def test_start_twice_keeps_one_thread():
    poller = StoragePoller(lambda: StorageHealth(1, 0, 0.0), interval=60)
    poller.start()
    first = poller._thread
    poller.start()
    assert poller._thread is first
    poller.stop()


@pytest.mark.parametrize("interval", [60, 0.01])
def test_stop_is_prompt(interval):
    poller = StoragePoller(lambda: StorageHealth(1, 0, 0.0), interval=interval)
    poller.start()
    poller.stop(timeout=5.0)
    assert not poller.running
