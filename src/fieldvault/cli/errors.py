"""fieldvault rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from fieldvault.cli.errors import err_no_db
    console.print(err_no_db(".fieldvault.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_db(db_path: str = ".fieldvault.db") -> str:
    """No database found at the configured path."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  fieldvault init"
    )


def err_storage_unavailable(detail: str) -> str:
    """The database could not be opened or written."""
    return (
        f"[red]Error:[/] Local storage is unavailable.\n"
        f"  {detail}\n"
        "  Check disk space and file permissions, then retry."
    )


def err_config(detail: str) -> str:
    """Config file has an invalid value."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {detail}\n"
        "  Fix fieldvault.yaml (or ~/.fieldvault/config.yaml) and retry."
    )


def err_point_not_found(name: str) -> str:
    return (
        f"[red]Error:[/] Survey point '{name}' not found.\n"
        "  Run:  fieldvault point list  to see all points."
    )


def err_point_exists(name: str) -> str:
    return (
        f"[red]Error:[/] A survey point named '{name}' already exists.\n"
        "  Choose another name, or omit --name to auto-number the point."
    )


def err_invalid_coordinates(detail: str) -> str:
    return (
        f"[red]Error:[/] {detail}\n"
        "  Latitude must be within -90..90 and longitude within -180..180."
    )


def err_unreadable_image(path: str) -> str:
    return (
        f"[red]Error:[/] '{path}' is not a readable image.\n"
        "  Use a JPEG or PNG file."
    )


def err_empty_project() -> str:
    return (
        "[red]Error:[/] No data to export.\n"
        "  Add a survey point first:  fieldvault point add LAT LNG"
    )


def err_output_path_unsafe(path: str) -> str:
    """--output-dir path fails security validation."""
    return (
        f"[red]Error:[/] Output path is not allowed: '{path}'\n"
        "  Use a path within the current working directory."
    )


def err_export_failed(failures: list[tuple[str, str]]) -> str:
    """Every delivery channel failed."""
    if failures:
        lines = "\n".join(f"    {name}: {reason}" for name, reason in failures)
    else:
        lines = "    (no delivery channel available)"
    return (
        "[red]Error:[/] Export failed.\n"
        f"{lines}\n"
        "  Your project is still saved locally. Retry with:  fieldvault export --output-dir <dir>"
    )


def err_archive_failed(detail: str) -> str:
    return (
        f"[red]Error:[/] Could not build the export archive.\n"
        f"  {detail}\n"
        "  Nothing was changed. Retry:  fieldvault export"
    )


def warn_missing_photos(count: int) -> str:
    """Photos flagged as full-resolution whose blob is gone."""
    noun = "photo" if count == 1 else "photos"
    return (
        f"[yellow]⚠[/] {count} {noun} unavailable — skipped in the archive.\n"
        "  Run:  fieldvault status  for details."
    )


def warn_unsaved(key: str) -> str:
    return (
        f"[yellow]⚠[/] Changes to '{key}' could not be saved yet.\n"
        "  Check disk space; the next fieldvault command will retry the save."
    )
