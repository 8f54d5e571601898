"""Tests for fieldvault point commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from fieldvault.cli.main import app
from fieldvault.db.connection import Database
from fieldvault.db.models import PhotoRecord
from fieldvault.db.repository import BlobStore, DocumentStore

runner = CliRunner()
KEY = "fieldvault_project_state"


@pytest.fixture
def project(tmp_path: Path) -> Path:
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0, result.output
    return tmp_path


def _doc(project: Path):
    return DocumentStore(Database(project / ".fieldvault.db")).get_document(KEY)


def _invoke(project: Path, *args: str, input: str | None = None):
    return runner.invoke(app, [*args, "-C", str(project)], input=input)


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------


def test_point_no_db_exits_1(tmp_path: Path) -> None:
    result = runner.invoke(app, ["point", "list", "-C", str(tmp_path)])
    assert result.exit_code == 1
    assert "fieldvault init" in result.output


def test_add_auto_names(project: Path) -> None:
    assert _invoke(project, "point", "add", "14.5995", "120.9842").exit_code == 0
    assert _invoke(project, "point", "add", "14.6", "120.99", "--notes", "leaning").exit_code == 0

    doc = _doc(project)
    assert [r.name for r in doc.records] == ["POLE-001", "POLE-002"]
    assert doc.records[1].notes == "leaning"


def test_add_named_with_altitude(project: Path) -> None:
    result = _invoke(project, "point", "add", "1", "2", "--name", "TOWER A", "--alt", "31.5")
    assert result.exit_code == 0, result.output
    record = _doc(project).records[0]
    assert record.name == "TOWER A"
    assert record.altitude == 31.5


def test_add_negative_coordinates(project: Path) -> None:
    result = runner.invoke(
        app, ["point", "add", "-C", str(project), "--", "-33.8688", "-151.2093"]
    )
    assert result.exit_code == 0, result.output
    record = _doc(project).records[0]
    assert (record.latitude, record.longitude) == (-33.8688, -151.2093)


def test_add_duplicate_name_exits_1(project: Path) -> None:
    _invoke(project, "point", "add", "1", "2", "--name", "P1")
    result = _invoke(project, "point", "add", "3", "4", "--name", "P1")
    assert result.exit_code == 1
    assert "already exists" in result.output
    assert len(_doc(project).records) == 1


def test_add_out_of_range_exits_1(project: Path) -> None:
    result = _invoke(project, "point", "add", "95", "2")
    assert result.exit_code == 1
    assert "Latitude" in result.output
    assert _doc(project) is None or _doc(project).records == []


# ---------------------------------------------------------------------------
# list / note
# ---------------------------------------------------------------------------


def test_list_empty(project: Path) -> None:
    result = _invoke(project, "point", "list")
    assert result.exit_code == 0
    assert "No survey points" in result.output


def test_list_shows_points(project: Path) -> None:
    _invoke(project, "point", "add", "1", "2")
    _invoke(project, "point", "add", "3", "4", "--name", "GATE")
    result = _invoke(project, "point", "list")
    assert result.exit_code == 0
    assert "POLE-001" in result.output
    assert "GATE" in result.output


def test_note_replaces_notes(project: Path) -> None:
    _invoke(project, "point", "add", "1", "2", "--notes", "old")
    result = _invoke(project, "point", "note", "POLE-001", "cracked base")
    assert result.exit_code == 0, result.output
    assert _doc(project).records[0].notes == "cracked base"


def test_note_unknown_point(project: Path) -> None:
    result = _invoke(project, "point", "note", "NOPE", "x")
    assert result.exit_code == 1
    assert "not found" in result.output


# ---------------------------------------------------------------------------
# remove
# ---------------------------------------------------------------------------


def test_remove_cascades_to_blobs(project: Path) -> None:
    _invoke(project, "point", "add", "1", "2")
    _invoke(project, "point", "add", "3", "4")
    db = Database(project / ".fieldvault.db")
    doc = _doc(project)
    doc.records[0].photos.append(
        PhotoRecord(id="ph-1", preview="data:image/jpeg;base64,AA==", has_full_res=True)
    )
    DocumentStore(db).put_document(KEY, doc)
    BlobStore(db).put_blob("ph-1", b"jpeg")

    result = _invoke(project, "point", "remove", "POLE-001", "--yes")

    assert result.exit_code == 0, result.output
    assert [r.name for r in _doc(project).records] == ["POLE-002"]
    assert BlobStore(db).list_blob_ids() == []


def test_remove_declined(project: Path) -> None:
    _invoke(project, "point", "add", "1", "2")
    result = _invoke(project, "point", "remove", "POLE-001", input="n\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert len(_doc(project).records) == 1


def test_remove_unknown_point(project: Path) -> None:
    result = _invoke(project, "point", "remove", "NOPE", "--yes")
    assert result.exit_code == 1
