"""Tests for fieldvault photo commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from fieldvault.cli.main import app
from fieldvault.db.connection import Database
from fieldvault.db.models import PhotoStatus
from fieldvault.db.repository import BlobStore, DocumentStore
from fieldvault.previews import decode_preview

runner = CliRunner()
KEY = "fieldvault_project_state"


@pytest.fixture
def project(tmp_path: Path) -> Path:
    assert runner.invoke(app, ["init", str(tmp_path)]).exit_code == 0
    assert runner.invoke(app, ["point", "add", "1", "2", "-C", str(tmp_path)]).exit_code == 0
    return tmp_path


def _db(project: Path) -> Database:
    return Database(project / ".fieldvault.db")


def _doc(project: Path):
    return DocumentStore(_db(project)).get_document(KEY)


def _invoke(project: Path, *args: str):
    return runner.invoke(app, [*args, "-C", str(project)])


def test_add_photo_stores_blob_and_preview(project: Path, tmp_path: Path, jpeg_bytes: bytes) -> None:
    image = tmp_path / "shot.jpg"
    image.write_bytes(jpeg_bytes)

    result = _invoke(project, "photo", "add", "POLE-001", str(image), "--remarks", "north side")

    assert result.exit_code == 0, result.output
    photo = _doc(project).records[0].photos[0]
    assert photo.has_full_res
    assert photo.remarks == "north side"
    assert photo.status is PhotoStatus.PENDING
    assert BlobStore(_db(project)).get_blob(photo.id) == jpeg_bytes
    assert decode_preview(photo.preview).startswith(b"\xff\xd8")


def test_add_png_is_stored_as_jpeg(project: Path, tmp_path: Path, png_bytes: bytes) -> None:
    image = tmp_path / "shot.png"
    image.write_bytes(png_bytes)
    assert _invoke(project, "photo", "add", "POLE-001", str(image)).exit_code == 0
    photo = _doc(project).records[0].photos[0]
    assert BlobStore(_db(project)).get_blob(photo.id).startswith(b"\xff\xd8")


def test_add_photo_at_point_records_location(project: Path, tmp_path: Path, jpeg_bytes: bytes) -> None:
    image = tmp_path / "shot.jpg"
    image.write_bytes(jpeg_bytes)
    _invoke(project, "photo", "add", "POLE-001", str(image), "--at-point")
    location = _doc(project).records[0].photos[0].location
    assert (location.latitude, location.longitude) == (1.0, 2.0)


def test_add_photo_unreadable_image(project: Path, tmp_path: Path) -> None:
    bogus = tmp_path / "notes.txt"
    bogus.write_text("not an image", encoding="utf-8")
    result = _invoke(project, "photo", "add", "POLE-001", str(bogus))
    assert result.exit_code == 1
    assert "not a readable image" in result.output
    assert BlobStore(_db(project)).list_blob_ids() == []


def test_add_photo_unknown_point(project: Path, tmp_path: Path, jpeg_bytes: bytes) -> None:
    image = tmp_path / "shot.jpg"
    image.write_bytes(jpeg_bytes)
    result = _invoke(project, "photo", "add", "NOPE", str(image))
    assert result.exit_code == 1
    assert BlobStore(_db(project)).list_blob_ids() == []


def test_review_sets_status(project: Path, tmp_path: Path, jpeg_bytes: bytes) -> None:
    image = tmp_path / "shot.jpg"
    image.write_bytes(jpeg_bytes)
    _invoke(project, "photo", "add", "POLE-001", str(image))

    result = _invoke(
        project, "photo", "review", "POLE-001", "1", "--status", "retake", "--remarks", "blurry"
    )

    assert result.exit_code == 0, result.output
    photo = _doc(project).records[0].photos[0]
    assert photo.status is PhotoStatus.RETAKE
    assert photo.remarks == "blurry"


def test_review_out_of_range(project: Path) -> None:
    result = _invoke(project, "photo", "review", "POLE-001", "3", "--status", "passed")
    assert result.exit_code == 1
    assert "no photo 3" in result.output
