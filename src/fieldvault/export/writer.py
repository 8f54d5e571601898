"""Output path handling for archive delivery.

Responsibilities:
  1. Validate output paths: confine relative paths to CWD or an explicitly
     allowed directory. Path traversal (../../etc/passwd) → hard fail.
  2. Overwrite protection: if the file exists, ask (--yes skips).
  3. Pick a non-clobbering name in shared folders (``name (1).zip``).
  4. Write archives atomically (temp file → rename).
"""

from __future__ import annotations

from pathlib import Path

import typer

from fieldvault.jsonio import atomic_write_bytes


def validate_output_path(output: str | Path, allowed_base: Path | None = None) -> Path:
    """Normalize and validate the output path.

    Security model:
    - Absolute paths are accepted as-is (user explicitly chose the location).
    - Relative paths are confined to *allowed_base* (default: CWD).
      Traversal sequences like '../../etc/passwd' are hard-blocked.

    Raises:
        ValueError: If a relative path escapes the allowed base directory.
    """
    path = Path(output)

    if path.is_absolute():
        return path.resolve()

    if allowed_base is None:
        allowed_base = Path.cwd()

    allowed_base = allowed_base.resolve()
    resolved = (allowed_base / path).resolve()

    try:
        resolved.relative_to(allowed_base)
    except ValueError:
        raise ValueError(
            f"Output path '{output}' resolves outside the allowed directory "
            f"('{allowed_base}'). Path traversal is not permitted."
        )

    return resolved


def check_overwrite(path: Path, yes: bool) -> bool:
    """Return True if we should proceed with writing, False if user declines.

    If *yes* is True, skip the prompt and return True.
    If the file does not exist, return True.
    Otherwise, ask the user.
    """
    if yes or not path.exists():
        return True

    return typer.confirm(f"  File exists: {path.name}\n  Overwrite?", default=False)


def unique_path(directory: Path, name: str) -> Path:
    """Return ``directory/name``, or ``name (N).ext`` if that is taken."""
    candidate = directory / name
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return candidate


def write_output(path: Path, data: bytes) -> None:
    """Write *data* to *path* atomically, creating parent directories."""
    atomic_write_bytes(path, data)
