"""fieldvault site — show or edit the project header."""

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


def site_cmd(
    name: Annotated[Optional[str], typer.Option("--name", help="Site / project name.")] = None,
    organization: Annotated[
        Optional[str], typer.Option("--org", help="Organization.")
    ] = None,
    group: Annotated[Optional[str], typer.Option("--group", help="Survey group.")] = None,
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Show the project header, or update any field given."""
    cfg = load_cli_config(project_dir, db)
    with project_session(cfg) as session:
        changes = {
            attr: value
            for attr, value in (
                ("site_name", name),
                ("organization", organization),
                ("group_name", group),
            )
            if value is not None
        }
        if changes:

            def _apply(doc) -> None:
                for attr, value in changes.items():
                    setattr(doc, attr, value)

            session.autosave.mutate(_apply)

        doc = session.document
        console.print(f"Site:          [bold]{doc.site_name}[/]")
        console.print(f"Organization:  {doc.organization}")
        console.print(f"Group:         {doc.group_name}")
        if changes:
            console.print("[green]✓[/] Project header updated")
