"""fieldvault init — create a project.

Creates:
  .fieldvault.db     — SQLite database with the documents, blobs and config
                       containers (pending migrations are applied on re-init)
  fieldvault.yaml    — project config template (left alone if present)

Re-running init on an existing project never drops data.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from fieldvault.cli.common import console, project_session
from fieldvault.cli.errors import err_config, err_storage_unavailable
from fieldvault.config import PROJECT_CONFIG_NAME, ConfigError, load_config, project_config_template
from fieldvault.db.connection import Database
from fieldvault.db.schema import list_containers
from fieldvault.errors import StorageUnavailableError

_DEFAULT_PROJECT_DIR = Path(".")


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = _DEFAULT_PROJECT_DIR,
    site: Annotated[
        Optional[str],
        typer.Option("--site", help="Site name for a new project."),
    ] = None,
) -> None:
    """Initialize a fieldvault project."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    config_path = project_dir / PROJECT_CONFIG_NAME
    if config_path.exists():
        console.print(f"  [dim]{PROJECT_CONFIG_NAME} exists — kept[/]")
    else:
        config_path.write_text(project_config_template(), encoding="utf-8")
        console.print(f"  [green]✓[/] {PROJECT_CONFIG_NAME}")

    try:
        cfg = load_config(project_dir)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    existed = cfg.db_path.exists()
    with project_session(cfg, must_exist=False) as session:
        if site and not existed:
            session.autosave.mutate(lambda doc: setattr(doc, "site_name", site))
        site_name = session.document.site_name

    try:
        with Database(cfg.db_path).session() as conn:
            containers = list_containers(conn)
    except StorageUnavailableError as exc:
        console.print(err_storage_unavailable(str(exc)))
        raise typer.Exit(1)

    verb = "checked" if existed else "created"
    console.print(f"  [green]✓[/] {cfg.db_path.name} {verb} ({', '.join(containers)})")
    console.print(f"\n[bold green]✓ Project '{site_name}' ready in {project_dir}.[/]")
    console.print("\nNext steps:")
    console.print("  1. fieldvault point add LAT LNG           (record a survey point)")
    console.print("  2. fieldvault photo add POLE-001 img.jpg  (attach photos)")
    console.print("  3. fieldvault export                      (build + deliver the archive)")
