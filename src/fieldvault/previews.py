"""Preview materialization for photo records.

Previews are small JPEGs embedded in the project document as data URLs so
listings never touch the blob store. Full-resolution bytes are normalized to
JPEG before they are stored, since the archive names every photo ``.jpg``.
"""

from __future__ import annotations

import base64
import io

from PIL import Image, ImageOps, UnidentifiedImageError

DEFAULT_PREVIEW_SIZE = 240
_DATA_URL_PREFIX = "data:image/jpeg;base64,"


def _open(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Not a readable image: {exc}") from exc
    return ImageOps.exif_transpose(image)


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    out = io.BytesIO()
    image.save(out, format="JPEG", quality=quality)
    return out.getvalue()


def make_preview(data: bytes, max_size: int = DEFAULT_PREVIEW_SIZE, quality: int = 70) -> str:
    """Return a JPEG data URL whose longest side is at most *max_size* px.

    Raises:
        ValueError: *data* is not an image Pillow can read.
    """
    image = _open(data)
    image.thumbnail((max_size, max_size))
    encoded = base64.b64encode(_encode_jpeg(image, quality)).decode("ascii")
    return _DATA_URL_PREFIX + encoded


def decode_preview(preview: str) -> bytes:
    """Return the JPEG bytes embedded in a preview data URL."""
    if not preview.startswith(_DATA_URL_PREFIX):
        raise ValueError("Preview is not a JPEG data URL")
    return base64.b64decode(preview[len(_DATA_URL_PREFIX):])


def to_jpeg(data: bytes, quality: int = 92) -> bytes:
    """Return *data* unchanged if it is already JPEG, else re-encode it.

    Raises:
        ValueError: *data* is not an image Pillow can read.
    """
    try:
        with Image.open(io.BytesIO(data)) as probe:
            fmt = probe.format
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Not a readable image: {exc}") from exc
    if fmt == "JPEG":
        return data
    return _encode_jpeg(_open(data), quality)
