"""KML / KMZ generation for mapping tools (Google Earth, QGIS).

Built with ElementTree so names and notes are always escaped; the output
stays well-formed for empty notes and records without photos.
"""

from __future__ import annotations

import html
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

KML_NAMESPACE = "http://www.opengis.net/kml/2.2"
KML_ENTRY = "doc.kml"
IMAGES_DIR = "images"
PREVIEW_WIDTH = 400

# Control characters XML 1.0 forbids even when escaped.
_XML_ILLEGAL_RE: re.Pattern[str] = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def xml_text(value: str) -> str:
    """Replace characters that cannot appear in an XML document with spaces."""
    return _XML_ILLEGAL_RE.sub(" ", value)


@dataclass
class Placemark:
    name: str
    latitude: float
    longitude: float
    altitude: float | None = None
    notes: str = ""
    record_id: str = ""
    image_paths: list[str] = field(default_factory=list)  # relative to doc.kml

    @property
    def coordinates(self) -> str:
        return f"{self.longitude},{self.latitude},{self.altitude or 0}"

    def description_html(self) -> str:
        images = "".join(
            f'<img src="{html.escape(path)}" width="{PREVIEW_WIDTH}"/><br/>'
            for path in self.image_paths
        )
        return f"{images}<p>{html.escape(xml_text(self.notes))}</p>"


def image_path(folder: str, index: int) -> str:
    """Relative KMZ path of the *index*-th (1-based) photo of a record."""
    return f"{IMAGES_DIR}/{folder}_IMG_{index}.jpg"


def build_kml(document_name: str, placemarks: list[Placemark]) -> bytes:
    """Return a UTF-8 KML document with one Point placemark per entry."""
    root = ET.Element("kml", xmlns=KML_NAMESPACE)
    doc = ET.SubElement(root, "Document")
    ET.SubElement(doc, "name").text = xml_text(document_name)

    for mark in placemarks:
        pm = ET.SubElement(doc, "Placemark")
        ET.SubElement(pm, "name").text = xml_text(mark.name)
        ET.SubElement(pm, "description").text = mark.description_html()
        if mark.record_id:
            extended = ET.SubElement(pm, "ExtendedData")
            data = ET.SubElement(extended, "Data", name="record_id")
            ET.SubElement(data, "value").text = xml_text(mark.record_id)
        point = ET.SubElement(pm, "Point")
        ET.SubElement(point, "coordinates").text = mark.coordinates

    return ET.tostring(root, encoding="UTF-8", xml_declaration=True)
