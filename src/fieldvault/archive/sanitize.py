"""Filesystem-safe names for archive folders and files."""

from __future__ import annotations

import re
from datetime import datetime

FALLBACK_NAME = "Unknown"
PLACEHOLDER = "-"

# Characters rejected by at least one common filesystem, plus control chars.
_ILLEGAL_RE: re.Pattern[str] = re.compile(r'[/\\?%*:|"<>\x00-\x1f]')


def sanitize_name(name: str | None, fallback: str = FALLBACK_NAME) -> str:
    """Replace illegal path characters with ``-``.

    A name made only of illegal characters (``"///???"``), or one that is
    empty once trailing dots and spaces go (``".."``, ``""``), collapses to
    *fallback*. Legal punctuation such as ``"-"`` is kept.

    Examples:
        "POLE-001"     -> "POLE-001"
        "A/B:C"        -> "A-B-C"
        "///???"       -> "Unknown"
    """
    raw = name or ""
    if not _ILLEGAL_RE.sub("", raw).strip():
        return fallback
    # Windows drops trailing dots/spaces from path segments.
    cleaned = _ILLEGAL_RE.sub(PLACEHOLDER, raw).strip().rstrip(". ")
    return cleaned or fallback


def timestamp_slug(moment: datetime) -> str:
    """``2026-10-19T05:59:00.123`` -> ``2026-10-19T05-59-00``."""
    return moment.strftime("%Y-%m-%dT%H-%M-%S")
