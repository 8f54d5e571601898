"""fieldvault reset — start over.

Drops the stored project document and every blob. Device identity and
license state live in the config container and survive a reset.

Usage:
  fieldvault reset
  fieldvault reset --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from fieldvault.cli.common import (
    DbOption,
    ProjectDirOption,
    console,
    load_cli_config,
    project_session,
)


def reset_cmd(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Delete all survey points and photos."""
    cfg = load_cli_config(project_dir, db)
    with project_session(cfg) as session:
        doc = session.document
        console.print(
            f"\nReset project: [bold]{doc.site_name}[/]\n"
            f"  Points: {len(doc.records)}  |  Photos: {doc.photo_count()}"
        )
        if not yes:
            if not typer.confirm("All survey data will be deleted. Continue?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        session.reset()
        console.print("[green]✓[/] Project reset.")
