"""Tests for the archive compiler."""

from __future__ import annotations

import io
import logging
import xml.etree.ElementTree as ET
import zipfile
from datetime import datetime, timezone

import pytest

from fieldvault.archive.compiler import ARCHIVE_MIME_TYPE, ArchiveCompiler
from fieldvault.archive.kml import KML_NAMESPACE
from fieldvault.db.models import PhotoRecord, ProjectDocument
from fieldvault.db.repository import BlobStore
from fieldvault.errors import ArchiveCompilationError

MOMENT = datetime(2026, 10, 19, 5, 59, 0, tzinfo=timezone.utc)
ROOT = "RIVERSIDE_2026-10-19T05-59-00"
NS = {"kml": KML_NAMESPACE}


@pytest.fixture
def blobs(tmp_db):
    return BlobStore(tmp_db)


@pytest.fixture
def compiler(blobs):
    return ArchiveCompiler(blobs, fetch_workers=4)


def _photo(photo_id, full_res=True):
    return PhotoRecord(
        id=photo_id,
        preview="data:image/jpeg;base64,AA==",
        captured_at="2026-10-19T05:00:00+00:00",
        has_full_res=full_res,
    )


def _project(blobs, jpeg_bytes) -> ProjectDocument:
    doc = ProjectDocument(site_name="RIVERSIDE")
    record = doc.add_record(14.5995, 120.9842, notes="ok")
    record.photos.append(_photo("ph-1"))
    blobs.put_blob("ph-1", jpeg_bytes)
    return doc


def _open(archive) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(archive.data))


def _kml(zf: zipfile.ZipFile, kmz_name: str) -> ET.Element:
    with zipfile.ZipFile(io.BytesIO(zf.read(kmz_name))) as kmz:
        return ET.fromstring(kmz.read("doc.kml"))


# ------------------------------------------------------------------
# Layout
# ------------------------------------------------------------------


def test_single_record_layout(compiler, blobs, jpeg_bytes):
    archive = compiler.compile(_project(blobs, jpeg_bytes), generated_at=MOMENT)

    assert archive.root_name == ROOT
    assert archive.filename == "RIVERSIDE_EXPORT.zip"
    assert archive.mime_type == ARCHIVE_MIME_TYPE
    assert archive.missing_photos == []
    assert archive.entries == [
        f"{ROOT}/RIVERSIDE_REPORT.kmz",
        f"{ROOT}/PROJECT_SUMMARY.txt",
        f"{ROOT}/POLES/POLE-001/metadata.txt",
        f"{ROOT}/POLES/POLE-001/PHOTO_1.jpg",
    ]
    with _open(archive) as zf:
        assert zf.namelist() == archive.entries
        assert zf.read(f"{ROOT}/POLES/POLE-001/PHOTO_1.jpg") == jpeg_bytes
        assert zf.testzip() is None


def test_kmz_contains_placemark_and_image(compiler, blobs, jpeg_bytes):
    archive = compiler.compile(_project(blobs, jpeg_bytes), generated_at=MOMENT)
    with _open(archive) as zf:
        kmz_bytes = zf.read(f"{ROOT}/RIVERSIDE_REPORT.kmz")
        root = _kml(zf, f"{ROOT}/RIVERSIDE_REPORT.kmz")

    with zipfile.ZipFile(io.BytesIO(kmz_bytes)) as kmz:
        assert kmz.namelist() == ["doc.kml", "images/POLE-001_IMG_1.jpg"]
        assert kmz.read("images/POLE-001_IMG_1.jpg") == jpeg_bytes

    placemarks = root.findall(".//kml:Placemark", NS)
    assert len(placemarks) == 1
    assert placemarks[0].find("kml:name", NS).text == "POLE-001"
    assert "POLE-001_IMG_1.jpg" in placemarks[0].find("kml:description", NS).text


def test_summary_and_metadata_text(compiler, blobs, jpeg_bytes):
    archive = compiler.compile(_project(blobs, jpeg_bytes), generated_at=MOMENT)
    with _open(archive) as zf:
        summary = zf.read(f"{ROOT}/PROJECT_SUMMARY.txt").decode("utf-8")
        metadata = zf.read(f"{ROOT}/POLES/POLE-001/metadata.txt").decode("utf-8")

    assert "PROJECT: RIVERSIDE" in summary
    assert "RECORD COUNT: 1" in summary
    assert "PHOTO COUNT: 1" in summary
    assert "GENERATED: 2026-10-19T05:59:00+00:00" in summary
    assert "NAME: POLE-001" in metadata
    assert "LAT: 14.5995" in metadata
    assert "NOTES: ok" in metadata
    assert "(PHOTO_1.jpg)" in metadata


def test_empty_project_compiles(compiler):
    archive = compiler.compile(ProjectDocument(site_name="EMPTY"), generated_at=MOMENT)
    assert [e.rsplit("/", 1)[1] for e in archive.entries] == [
        "EMPTY_REPORT.kmz",
        "PROJECT_SUMMARY.txt",
    ]
    with _open(archive) as zf:
        root = _kml(zf, archive.entries[0])
    assert root.findall(".//kml:Placemark", NS) == []


def test_record_without_photos_and_notes(compiler):
    doc = ProjectDocument(site_name="S")
    doc.add_record(1.0, 2.0)
    archive = compiler.compile(doc, generated_at=MOMENT)
    with _open(archive) as zf:
        metadata = zf.read(archive.entries[2]).decode("utf-8")
    assert "NOTES: None" in metadata
    assert "PHOTOS: 0" in metadata
    assert "ALT: N/A" in metadata


def test_unsafe_names_are_sanitized(compiler):
    doc = ProjectDocument(site_name="///???")
    doc.add_record(1.0, 2.0, name="A/B:C")
    archive = compiler.compile(doc, generated_at=MOMENT)
    assert archive.root_name.startswith("Unknown_")
    assert archive.filename == "Unknown_EXPORT.zip"
    assert f"{archive.root_name}/POLES/A-B-C/metadata.txt" in archive.entries


def test_control_characters_in_notes_keep_kml_well_formed(compiler):
    doc = ProjectDocument(site_name="S")
    doc.add_record(1.0, 2.0, name="POLE-001", notes="line\x0bbreak\x0cform")
    archive = compiler.compile(doc, generated_at=MOMENT)
    kmz_name = next(e for e in archive.entries if e.endswith("_REPORT.kmz"))
    with _open(archive) as zf:
        root = _kml(zf, kmz_name)
    placemark = root.find(".//kml:Placemark", NS)
    assert placemark.find("kml:name", NS).text == "POLE-001"
    assert "line break form" in placemark.find("kml:description", NS).text


# ------------------------------------------------------------------
# Missing blobs / preview-only photos
# ------------------------------------------------------------------


def test_missing_blob_is_skipped_and_reported(compiler, blobs, jpeg_bytes, caplog):
    doc = _project(blobs, jpeg_bytes)
    doc.records[0].photos.append(_photo("ph-gone"))

    with caplog.at_level(logging.WARNING, logger="fieldvault"):
        archive = compiler.compile(doc, generated_at=MOMENT)

    assert archive.missing_photos == ["ph-gone"]
    assert f"{ROOT}/POLES/POLE-001/PHOTO_2.jpg" not in archive.entries
    assert "1 photos unavailable" in caplog.text
    with _open(archive) as zf:
        metadata = zf.read(f"{ROOT}/POLES/POLE-001/metadata.txt").decode("utf-8")
    assert "[2] PENDING" in metadata
    assert "(unavailable)" in metadata


def test_preview_only_photo_not_fetched_or_missing(compiler, blobs, jpeg_bytes):
    doc = _project(blobs, jpeg_bytes)
    doc.records[0].photos.append(_photo("ph-preview", full_res=False))
    archive = compiler.compile(doc, generated_at=MOMENT)
    assert archive.missing_photos == []
    assert not any(e.endswith("PHOTO_2.jpg") for e in archive.entries)


# ------------------------------------------------------------------
# Collisions / ordering / determinism
# ------------------------------------------------------------------


def test_case_insensitive_folder_collision_first_wins(compiler, blobs, jpeg_bytes, caplog):
    doc = ProjectDocument(site_name="S")
    first = doc.add_record(1.0, 2.0, name="pole-1")
    second = doc.add_record(3.0, 4.0, name="POLE-1")
    first.photos.append(_photo("a"))
    second.photos.append(_photo("b"))
    blobs.put_blob("a", jpeg_bytes)
    blobs.put_blob("b", b"second")

    with caplog.at_level(logging.WARNING, logger="fieldvault"):
        archive = compiler.compile(doc, generated_at=MOMENT)

    folders = [e for e in archive.entries if "/POLES/" in e]
    assert all("/POLES/pole-1/" in e for e in folders)
    with _open(archive) as zf:
        assert zf.read(f"{archive.root_name}/POLES/pole-1/PHOTO_1.jpg") == jpeg_bytes
        root = _kml(zf, archive.entries[0])
    assert len(root.findall(".//kml:Placemark", NS)) == 2
    assert "collides" in caplog.text


def test_entries_follow_document_order(compiler, blobs, jpeg_bytes):
    doc = ProjectDocument(site_name="S")
    for name in ("ZULU", "ALPHA", "MIKE"):
        record = doc.add_record(1.0, 2.0, name=name)
        for n in range(3):
            photo_id = f"{name}-{n}"
            record.photos.append(_photo(photo_id))
            blobs.put_blob(photo_id, f"{photo_id}".encode())

    archive = compiler.compile(doc, generated_at=MOMENT)

    photo_entries = [e.split("/POLES/")[1] for e in archive.entries if e.endswith(".jpg")]
    assert photo_entries == [
        f"{name}/PHOTO_{n}.jpg" for name in ("ZULU", "ALPHA", "MIKE") for n in (1, 2, 3)
    ]
    with _open(archive) as zf:
        assert zf.read(f"{archive.root_name}/POLES/ALPHA/PHOTO_2.jpg") == b"ALPHA-1"


def test_compilation_is_deterministic(blobs, jpeg_bytes):
    doc = _project(blobs, jpeg_bytes)
    parallel = ArchiveCompiler(blobs, fetch_workers=4).compile(doc, generated_at=MOMENT)
    serial = ArchiveCompiler(blobs, fetch_workers=1).compile(doc, generated_at=MOMENT)
    again = ArchiveCompiler(blobs, fetch_workers=4).compile(doc, generated_at=MOMENT)
    assert parallel.data == serial.data == again.data


def test_fixed_entry_timestamps(compiler, blobs, jpeg_bytes):
    archive = compiler.compile(_project(blobs, jpeg_bytes), generated_at=MOMENT)
    with _open(archive) as zf:
        assert {info.date_time for info in zf.infolist()} == {(1980, 1, 1, 0, 0, 0)}


def test_compile_does_not_mutate_document(compiler, blobs, jpeg_bytes):
    doc = _project(blobs, jpeg_bytes)
    doc.records[0].photos.append(_photo("ph-gone"))
    before = doc.to_dict()
    compiler.compile(doc, generated_at=MOMENT)
    assert doc.to_dict() == before


# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------


def test_invalid_worker_count(blobs):
    with pytest.raises(ValueError):
        ArchiveCompiler(blobs, fetch_workers=0)


def test_serialization_failure_wraps(compiler, blobs, jpeg_bytes, monkeypatch):
    def boom(*args, **kwargs):
        raise zipfile.LargeZipFile("too big")

    monkeypatch.setattr(zipfile.ZipFile, "writestr", boom)
    with pytest.raises(ArchiveCompilationError):
        compiler.compile(_project(blobs, jpeg_bytes), generated_at=MOMENT)
