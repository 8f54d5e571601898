"""Domain models for the fieldvault project document.

The project document owns survey records, which own photo records by value.
Photo records carry only an inline preview; the full-resolution image is a
separate blob keyed by the photo id (``has_full_res`` marks that it exists).
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

DEFAULT_SITE_NAME = "ACTIVE OSP PROJECT"
DEFAULT_ORGANIZATION = "FIELD OPERATIONS"
DEFAULT_GROUP_NAME = "SURVEY GROUP 1"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


class PhotoStatus(str, Enum):
    """QA state of a captured photo."""

    PENDING = "PENDING"
    PASSED = "PASSED"
    RETAKE = "RETAKE"


@dataclass
class CaptureLocation:
    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CaptureLocation:
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


@dataclass
class PhotoRecord:
    id: str
    preview: str  # data URL, small JPEG
    captured_at: str = field(default_factory=_now_iso)
    status: PhotoStatus = PhotoStatus.PENDING
    remarks: str | None = None
    location: CaptureLocation | None = None
    has_full_res: bool = False  # blob exists under the same id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "preview": self.preview,
            "captured_at": self.captured_at,
            "status": self.status.value,
            "remarks": self.remarks,
            "location": self.location.to_dict() if self.location else None,
            "has_full_res": self.has_full_res,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PhotoRecord:
        location = data.get("location")
        return cls(
            id=data["id"],
            preview=data.get("preview", ""),
            captured_at=data.get("captured_at", ""),
            status=PhotoStatus(data.get("status", PhotoStatus.PENDING.value)),
            remarks=data.get("remarks"),
            location=CaptureLocation.from_dict(location) if location else None,
            has_full_res=bool(data.get("has_full_res", False)),
        )


@dataclass
class SurveyRecord:
    id: str
    name: str
    latitude: float
    longitude: float
    altitude: float | None = None
    created_at: str = field(default_factory=_now_iso)
    notes: str = ""
    photos: list[PhotoRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        _check_coordinates(self.latitude, self.longitude)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "created_at": self.created_at,
            "notes": self.notes,
            "photos": [p.to_dict() for p in self.photos],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SurveyRecord:
        altitude = data.get("altitude")
        return cls(
            id=data["id"],
            name=data["name"],
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            altitude=float(altitude) if altitude is not None else None,
            created_at=data.get("created_at", ""),
            notes=data.get("notes") or "",
            photos=[PhotoRecord.from_dict(p) for p in data.get("photos", [])],
        )


@dataclass
class ProjectDocument:
    """The single live project: site metadata plus ordered survey records."""

    id: str = field(default_factory=_new_id)
    site_name: str = DEFAULT_SITE_NAME
    organization: str = DEFAULT_ORGANIZATION
    group_name: str = DEFAULT_GROUP_NAME
    records: list[SurveyRecord] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "site_name": self.site_name,
            "organization": self.organization,
            "group_name": self.group_name,
            "records": [r.to_dict() for r in self.records],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectDocument:
        return cls(
            id=data["id"],
            site_name=data.get("site_name", ""),
            organization=data.get("organization", ""),
            group_name=data.get("group_name", ""),
            records=[SurveyRecord.from_dict(r) for r in data.get("records", [])],
        )

    # ------------------------------------------------------------------
    # Record operations
    # ------------------------------------------------------------------

    def add_record(
        self,
        latitude: float,
        longitude: float,
        altitude: float | None = None,
        name: str | None = None,
        notes: str = "",
    ) -> SurveyRecord:
        """Append a new survey record; unnamed records get ``POLE-NNN``."""
        if name is None:
            name = f"POLE-{len(self.records) + 1:03d}"
        record = SurveyRecord(
            id=_new_id(),
            name=name,
            latitude=latitude,
            longitude=longitude,
            altitude=altitude,
            notes=notes,
        )
        self.records.append(record)
        return record

    def find_record(self, record_id: str) -> SurveyRecord | None:
        return next((r for r in self.records if r.id == record_id), None)

    def find_record_by_name(self, name: str) -> SurveyRecord | None:
        return next((r for r in self.records if r.name == name), None)

    def update_record(self, record_id: str, **fields: Any) -> SurveyRecord:
        """Apply *fields* to the record with *record_id*.

        Raises:
            KeyError: No such record, or ``id`` was passed (ids are immutable).
            ValueError: The update leaves invalid coordinates.
        """
        if "id" in fields:
            raise KeyError("Survey record ids are immutable")
        record = self.find_record(record_id)
        if record is None:
            raise KeyError(record_id)
        for name in fields:
            if not hasattr(record, name):
                raise KeyError(f"Unknown survey record field '{name}'")
        lat = fields.get("latitude", record.latitude)
        lng = fields.get("longitude", record.longitude)
        _check_coordinates(lat, lng)
        for name, value in fields.items():
            setattr(record, name, value)
        return record

    def remove_records(self, record_ids: list[str]) -> list[str]:
        """Delete records by id and return the blob ids they referenced.

        The returned blobs are orphaned; callers may delete them now or
        leave them to ``BlobStore.prune_orphans``.
        """
        wanted = set(record_ids)
        orphaned = [
            photo.id
            for record in self.records
            if record.id in wanted
            for photo in record.photos
            if photo.has_full_res
        ]
        self.records = [r for r in self.records if r.id not in wanted]
        return orphaned

    def referenced_blob_ids(self) -> set[str]:
        return {
            photo.id
            for record in self.records
            for photo in record.photos
            if photo.has_full_res
        }

    def photo_count(self) -> int:
        return sum(len(r.photos) for r in self.records)


def _check_coordinates(latitude: float, longitude: float) -> None:
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise ValueError(f"Coordinates must be finite, got ({latitude}, {longitude})")
    if not -90.0 <= latitude <= 90.0:
        raise ValueError(f"Latitude out of range: {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise ValueError(f"Longitude out of range: {longitude}")
