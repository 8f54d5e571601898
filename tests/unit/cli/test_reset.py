"""Tests for fieldvault reset."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from fieldvault.cli.main import app
from fieldvault.db.connection import Database
from fieldvault.db.repository import BlobStore, DocumentStore

runner = CliRunner()
KEY = "fieldvault_project_state"


def _device(result) -> str:
    return result.output.strip().splitlines()[-1]


def _setup(tmp_path: Path) -> Database:
    runner.invoke(app, ["init", str(tmp_path)])
    runner.invoke(app, ["point", "add", "1", "2", "-C", str(tmp_path)])
    db = Database(tmp_path / ".fieldvault.db")
    BlobStore(db).put_blob("orphan", b"x")
    return db


def test_reset_with_yes(tmp_path: Path) -> None:
    db = _setup(tmp_path)
    device = _device(runner.invoke(app, ["license", "device", "-C", str(tmp_path)]))

    result = runner.invoke(app, ["reset", "--yes", "-C", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert DocumentStore(db).get_document(KEY) is None
    assert BlobStore(db).list_blob_ids() == []
    after = _device(runner.invoke(app, ["license", "device", "-C", str(tmp_path)]))
    assert after == device


def test_reset_declined(tmp_path: Path) -> None:
    db = _setup(tmp_path)
    result = runner.invoke(app, ["reset", "-C", str(tmp_path)], input="n\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert len(DocumentStore(db).get_document(KEY).records) == 1
