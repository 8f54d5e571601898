"""Shared pytest fixtures."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from fieldvault.config import FieldVaultConfig
from fieldvault.db.connection import Database
from fieldvault.db.schema import initialize


@pytest.fixture
def tmp_db(tmp_path):
    """File-based Database in tmp_path with schema initialized."""
    db = Database(tmp_path / ".fieldvault.db")
    with db.session() as conn:
        initialize(conn)
    return db


@pytest.fixture
def cfg(tmp_path) -> FieldVaultConfig:
    """Default config rooted at tmp_path (no YAML, no env)."""
    config = FieldVaultConfig(project_dir=tmp_path)
    config.export.download_dir = str(tmp_path / "downloads")
    return config


class ManualTimer:
    """Debounce timer that only fires when the test says so."""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled and not self.fired:
            self.fired = True
            self.callback()


class ManualTimerFactory:
    def __init__(self):
        self.timers: list[ManualTimer] = []

    def __call__(self, interval, callback):
        timer = ManualTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> list[ManualTimer]:
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def fire_all(self):
        for timer in self.live:
            timer.fire()


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


def make_image(fmt: str = "JPEG", size=(640, 480), color=(200, 30, 30)) -> bytes:
    image = Image.new("RGB", size, color)
    out = io.BytesIO()
    image.save(out, format=fmt)
    return out.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return make_image("PNG")


@pytest.fixture
def image_factory():
    return make_image
