"""fieldvault point — survey point management.

Usage:
  fieldvault point add 14.5995 120.9842 --name POLE-001 --notes "ok"
  fieldvault point list
  fieldvault point note POLE-001 "leaning 5°"
  fieldvault point remove POLE-001 --yes

Negative coordinates need ``--`` before them:
  fieldvault point add -- -33.8688 151.2093
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.table import Table

from fieldvault.cli.common import (
    DbOption,
    ProjectDirOption,
    console,
    load_cli_config,
    project_session,
)
from fieldvault.cli.errors import err_invalid_coordinates, err_point_exists, err_point_not_found

points_app = typer.Typer(
    name="point",
    help="Add, list, annotate and remove survey points.",
    add_completion=False,
)


@points_app.command("add")
def add_cmd(
    latitude: Annotated[float, typer.Argument(help="Latitude in decimal degrees.")],
    longitude: Annotated[float, typer.Argument(help="Longitude in decimal degrees.")],
    name: Annotated[
        Optional[str],
        typer.Option("--name", "-n", help="Point name (default: POLE-NNN)."),
    ] = None,
    altitude: Annotated[
        Optional[float], typer.Option("--alt", help="Altitude in metres.")
    ] = None,
    notes: Annotated[str, typer.Option("--notes", help="Free-text notes.")] = "",
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Add a survey point."""
    cfg = load_cli_config(project_dir, db)
    with project_session(cfg) as session:
        if name is not None and session.document.find_record_by_name(name) is not None:
            console.print(err_point_exists(name))
            raise typer.Exit(1)
        try:
            record = session.autosave.mutate(
                lambda doc: doc.add_record(
                    latitude, longitude, altitude=altitude, name=name, notes=notes
                )
            )
        except ValueError as exc:
            console.print(err_invalid_coordinates(str(exc)))
            raise typer.Exit(1)
        console.print(
            f"[green]✓[/] Added [bold]{record.name}[/] at {record.latitude}, {record.longitude}"
        )


@points_app.command("list")
def list_cmd(
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """List survey points in document order."""
    cfg = load_cli_config(project_dir, db)
    with project_session(cfg) as session:
        records = session.document.records
        if not records:
            console.print("[dim]No survey points yet.[/]")
            return

        table = Table(show_header=True, box=None, padding=(0, 1))
        table.add_column("Name", style="bold")
        table.add_column("Latitude", justify="right")
        table.add_column("Longitude", justify="right")
        table.add_column("Photos", justify="right")
        table.add_column("Notes", style="dim")
        for record in records:
            table.add_row(
                record.name,
                f"{record.latitude:.7f}",
                f"{record.longitude:.7f}",
                str(len(record.photos)),
                record.notes,
            )
        console.print(table)


@points_app.command("note")
def note_cmd(
    name: Annotated[str, typer.Argument(help="Point name.")],
    text: Annotated[str, typer.Argument(help="New notes (replaces existing).")],
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Replace the notes of a survey point."""
    cfg = load_cli_config(project_dir, db)
    with project_session(cfg) as session:
        record = session.document.find_record_by_name(name)
        if record is None:
            console.print(err_point_not_found(name))
            raise typer.Exit(1)
        session.autosave.mutate(lambda doc: doc.update_record(record.id, notes=text))
        console.print(f"[green]✓[/] Notes updated for [bold]{name}[/]")


@points_app.command("remove")
def remove_cmd(
    name: Annotated[str, typer.Argument(help="Point name.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Remove a survey point and its photos."""
    cfg = load_cli_config(project_dir, db)
    with project_session(cfg) as session:
        record = session.document.find_record_by_name(name)
        if record is None:
            console.print(err_point_not_found(name))
            raise typer.Exit(1)

        console.print(f"\nRemove point: [bold]{name}[/]  ({len(record.photos)} photos)")
        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        deleted = session.remove_records([record.id])
        console.print(f"[green]✓[/] Removed: {name}  ({deleted} full-resolution photos deleted)")
