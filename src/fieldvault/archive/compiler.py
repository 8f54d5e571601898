"""Archive compiler: project document + blobs → one ZIP container.

Layout::

    <SITE>_<timestamp>/
        <SITE>_REPORT.kmz           doc.kml + images/<RECORD>_IMG_<n>.jpg
        PROJECT_SUMMARY.txt
        POLES/<RECORD>/metadata.txt
        POLES/<RECORD>/PHOTO_<n>.jpg

Entry order follows document order and every entry carries the same fixed
timestamp, so two compilations of the same document differ only in the root
folder name and the generation time inside PROJECT_SUMMARY.txt. Blob reads
may complete in any order on the fetch pool; results are keyed back to
source order before anything is written.

A photo flagged ``has_full_res`` whose blob is gone is skipped and listed in
``CompiledArchive.missing_photos``. Two records whose folder names collide
(case-insensitively) keep the first record's folder; the second record is
still placed on the map but gets no folder or images.
"""

from __future__ import annotations

import io
import logging
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from fieldvault.archive.kml import KML_ENTRY, Placemark, build_kml, image_path
from fieldvault.archive.sanitize import sanitize_name, timestamp_slug
from fieldvault.db.models import PhotoRecord, ProjectDocument, SurveyRecord
from fieldvault.errors import ArchiveCompilationError

logger = logging.getLogger(__name__)

ARCHIVE_MIME_TYPE = "application/zip"
RECORDS_DIR = "POLES"
SUMMARY_ENTRY = "PROJECT_SUMMARY.txt"
METADATA_ENTRY = "metadata.txt"

# Earliest timestamp ZIP can represent; keeps entry headers content-only.
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class BlobSource(Protocol):
    def get_blob(self, blob_id: str) -> bytes | None: ...


@dataclass
class CompiledArchive:
    data: bytes
    root_name: str
    filename: str
    entries: list[str] = field(default_factory=list)
    missing_photos: list[str] = field(default_factory=list)
    mime_type: str = ARCHIVE_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class _RecordPlan:
    record: SurveyRecord
    folder: str | None  # None when the folder name collided


class ArchiveCompiler:
    """Build export archives from a project document.

    Args:
        blobs: Anything with ``get_blob(id) -> bytes | None`` (a ``BlobStore``).
        fetch_workers: Threads used for blob reads; 1 reads sequentially.
    """

    def __init__(self, blobs: BlobSource, fetch_workers: int = 4) -> None:
        if fetch_workers < 1:
            raise ValueError(f"fetch_workers must be >= 1, got {fetch_workers}")
        self._blobs = blobs
        self._fetch_workers = fetch_workers

    def compile(
        self, document: ProjectDocument, generated_at: datetime | None = None
    ) -> CompiledArchive:
        """Compile *document* into a ZIP archive.

        Args:
            document: Project to export.
            generated_at: Generation time (defaults to now, UTC).

        Raises:
            ArchiveCompilationError: Serializing the container failed.
            StorageUnavailableError: The blob store could not be read.
        """
        moment = generated_at or datetime.now(timezone.utc)
        site = sanitize_name(document.site_name)
        root = f"{site}_{timestamp_slug(moment)}"

        assets = self._fetch_assets(document)
        missing = [
            photo.id
            for record in document.records
            for photo in record.photos
            if photo.has_full_res and assets.get(photo.id) is None
        ]
        if missing:
            logger.warning("%d photos unavailable; skipped in archive", len(missing))

        plans = _plan_folders(document.records)

        try:
            kmz = _build_kmz(document.site_name, plans, assets)
            buffer = io.BytesIO()
            entries: list[str] = []
            with zipfile.ZipFile(buffer, "w") as zf:
                _write_entry(zf, f"{root}/{site}_REPORT.kmz", kmz, entries)
                _write_entry(
                    zf,
                    f"{root}/{SUMMARY_ENTRY}",
                    _summary_text(document, moment).encode("utf-8"),
                    entries,
                )
                for plan in plans:
                    if plan.folder is None:
                        continue
                    base = f"{root}/{RECORDS_DIR}/{plan.folder}"
                    _write_entry(
                        zf,
                        f"{base}/{METADATA_ENTRY}",
                        _metadata_text(plan.record, assets).encode("utf-8"),
                        entries,
                    )
                    for index, photo in enumerate(plan.record.photos, start=1):
                        data = assets.get(photo.id)
                        if data is not None:
                            _write_entry(zf, f"{base}/PHOTO_{index}.jpg", data, entries)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as exc:
            raise ArchiveCompilationError(f"Could not build archive: {exc}") from exc

        return CompiledArchive(
            data=buffer.getvalue(),
            root_name=root,
            filename=f"{site}_EXPORT.zip",
            entries=entries,
            missing_photos=missing,
        )

    def _fetch_assets(self, document: ProjectDocument) -> dict[str, bytes | None]:
        ids: list[str] = []
        seen: set[str] = set()
        for record in document.records:
            for photo in record.photos:
                if photo.has_full_res and photo.id not in seen:
                    seen.add(photo.id)
                    ids.append(photo.id)
        if not ids:
            return {}
        if self._fetch_workers == 1:
            return {blob_id: self._blobs.get_blob(blob_id) for blob_id in ids}
        with ThreadPoolExecutor(max_workers=self._fetch_workers) as pool:
            # map() yields in submission order regardless of completion order
            return dict(zip(ids, pool.map(self._blobs.get_blob, ids)))


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _plan_folders(records: list[SurveyRecord]) -> list[_RecordPlan]:
    used: dict[str, str] = {}
    plans: list[_RecordPlan] = []
    for record in records:
        folder = sanitize_name(record.name)
        key = folder.casefold()
        if key in used:
            logger.warning(
                "Record '%s' collides with '%s' as folder '%s'; keeping the first",
                record.name,
                used[key],
                folder,
            )
            plans.append(_RecordPlan(record=record, folder=None))
            continue
        used[key] = record.name
        plans.append(_RecordPlan(record=record, folder=folder))
    return plans


def _build_kmz(
    document_name: str, plans: list[_RecordPlan], assets: dict[str, bytes | None]
) -> bytes:
    placemarks: list[Placemark] = []
    images: list[tuple[str, bytes]] = []
    for plan in plans:
        record = plan.record
        mark = Placemark(
            name=record.name,
            latitude=record.latitude,
            longitude=record.longitude,
            altitude=record.altitude,
            notes=record.notes,
            record_id=record.id,
        )
        if plan.folder is not None:
            for index, photo in enumerate(record.photos, start=1):
                data = assets.get(photo.id)
                if data is None:
                    continue
                path = image_path(plan.folder, index)
                mark.image_paths.append(path)
                images.append((path, data))
        placemarks.append(mark)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        _write_entry(zf, KML_ENTRY, build_kml(document_name, placemarks), [])
        for path, data in images:
            _write_entry(zf, path, data, [])
    return buffer.getvalue()


def _write_entry(zf: zipfile.ZipFile, name: str, data: bytes, entries: list[str]) -> None:
    info = zipfile.ZipInfo(name, date_time=_FIXED_DATE_TIME)
    info.external_attr = 0o644 << 16
    # JPEG and nested ZIP payloads are already compressed.
    if name.endswith((".jpg", ".kmz")):
        info.compress_type = zipfile.ZIP_STORED
    else:
        info.compress_type = zipfile.ZIP_DEFLATED
    zf.writestr(info, data)
    entries.append(name)


def _summary_text(document: ProjectDocument, moment: datetime) -> str:
    lines = [
        f"PROJECT: {document.site_name}",
        f"ORGANIZATION: {document.organization}",
        f"GROUP: {document.group_name}",
        f"GENERATED: {moment.isoformat(timespec='seconds')}",
        f"RECORD COUNT: {len(document.records)}",
        f"PHOTO COUNT: {document.photo_count()}",
    ]
    return "\n".join(lines) + "\n"


def _metadata_text(record: SurveyRecord, assets: dict[str, bytes | None]) -> str:
    lines = [
        f"NAME: {record.name}",
        f"ID: {record.id}",
        f"LAT: {record.latitude}",
        f"LNG: {record.longitude}",
        f"ALT: {record.altitude if record.altitude is not None else 'N/A'}",
        f"CREATED: {record.created_at}",
        f"NOTES: {record.notes or 'None'}",
        f"PHOTOS: {len(record.photos)}",
    ]
    for index, photo in enumerate(record.photos, start=1):
        lines.append(_photo_line(index, photo, assets))
    return "\n".join(lines) + "\n"


def _photo_line(index: int, photo: PhotoRecord, assets: dict[str, bytes | None]) -> str:
    if not photo.has_full_res:
        availability = "preview only"
    elif assets.get(photo.id) is None:
        availability = "unavailable"
    else:
        availability = f"PHOTO_{index}.jpg"
    line = f"  [{index}] {photo.status.value} {photo.captured_at} ({availability})"
    if photo.location is not None:
        line += f" @ {photo.location.latitude},{photo.location.longitude}"
    if photo.remarks:
        line += f" - {photo.remarks}"
    return line
