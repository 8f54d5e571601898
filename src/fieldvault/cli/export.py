"""fieldvault export — compile the project and deliver the archive.

Channels are tried in priority order:
  1. file      — --output-dir (or export.output_dir); prompts before overwrite
  2. share     — --share-command (or export.share_command) run with the file path
  3. download  — export.download_dir, never overwrites (``name (1).zip``)

Cancelling at any channel ends the export quietly (exit 0). Exit 1 only
when every channel failed.

Usage:
  fieldvault export
  fieldvault export --output-dir exports --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from fieldvault.cli.common import (
    DbOption,
    ProjectDirOption,
    console,
    load_cli_config,
    project_session,
)
from fieldvault.cli.errors import (
    err_archive_failed,
    err_empty_project,
    err_export_failed,
    err_output_path_unsafe,
    warn_missing_photos,
)
from fieldvault.errors import ArchiveCompilationError, ExportFailedError
from fieldvault.export.channels import DownloadChannel, FileSaveChannel, HandoffChannel
from fieldvault.export.dispatcher import ExportDispatcher
from fieldvault.export.writer import check_overwrite, validate_output_path

_MB = 1024 * 1024


def export_cmd(
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Save the archive into this directory."),
    ] = None,
    share_command: Annotated[
        Optional[str],
        typer.Option("--share-command", help="Hand the archive to this command."),
    ] = None,
    download_dir: Annotated[
        Optional[Path],
        typer.Option("--download-dir", help="Fallback download directory."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Overwrite an existing archive without asking."),
    ] = False,
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Compile the project into a ZIP archive and deliver it."""
    cfg = load_cli_config(project_dir, db)

    target_dir: Path | None = None
    if output_dir is not None:
        try:
            target_dir = validate_output_path(output_dir)
        except ValueError:
            console.print(err_output_path_unsafe(str(output_dir)))
            raise typer.Exit(1)
    elif cfg.export.output_dir:
        target_dir = cfg.resolve(cfg.export.output_dir)

    fallback_dir = download_dir if download_dir is not None else cfg.resolve(cfg.export.download_dir)

    with project_session(cfg) as session:
        doc = session.document
        if not doc.records:
            console.print(err_empty_project())
            raise typer.Exit(1)

        console.print(f"\nCompiling [bold]{doc.site_name}[/] ({len(doc.records)} points) …")
        try:
            archive = session.compiler().compile(doc)
        except ArchiveCompilationError as exc:
            console.print(err_archive_failed(str(exc)))
            raise typer.Exit(1)

        if archive.missing_photos:
            console.print(warn_missing_photos(len(archive.missing_photos)))

        dispatcher = ExportDispatcher(
            [
                FileSaveChannel(
                    target_dir, confirm_overwrite=lambda path: check_overwrite(path, yes)
                ),
                HandoffChannel(
                    share_command or cfg.export.share_command,
                    max_bytes=cfg.export.share_max_bytes,
                ),
                DownloadChannel(fallback_dir),
            ]
        )
        try:
            report = dispatcher.dispatch(archive.data, archive.filename, archive.mime_type)
        except ExportFailedError as exc:
            console.print(err_export_failed(exc.failures))
            raise typer.Exit(1)

    if report.cancelled:
        console.print("[dim]Export cancelled.[/]")
        raise typer.Exit(0)

    for name, reason in report.failures:
        console.print(f"[yellow]⚠[/] {name}: {reason}")
    console.print(
        f"[green]✓[/] {archive.filename} ({archive.size / _MB:.2f} MB, "
        f"{len(archive.entries)} entries) → {report.result.destination}"
    )
