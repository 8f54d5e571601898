"""fieldvault status command.

Shows the project header and save state, survey counts with blob integrity
gaps, storage health of the database filesystem, and license state.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel

from fieldvault.cli.common import (
    DbOption,
    ProjectDirOption,
    console,
    load_cli_config,
    project_session,
)
from fieldvault.config import FieldVaultConfig
from fieldvault.health import StorageHealth
from fieldvault.session import ProjectSession

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


def status_cmd(
    repair: Annotated[
        bool,
        typer.Option("--repair", help="Unflag photos whose full-resolution image is gone."),
    ] = False,
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Show project status: survey data, storage and license."""
    cfg = load_cli_config(project_dir, db)
    if not cfg.db_path.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  fieldvault init",
                title="[bold]Project[/]",
                expand=False,
            )
        )
        return

    with project_session(cfg) as session:
        if repair:
            repaired = session.repair_missing_blobs()
            console.print(f"[green]✓[/] Repaired {repaired} photo references")

        # ---- Panel 1: Project ----
        _show_project_panel(session, cfg)

        # ---- Panel 2: Survey data ----
        _show_survey_panel(session)

        # ---- Panel 3: Storage ----
        try:
            health = session.storage_health()
        except OSError as exc:
            logger.warning("Storage health probe failed: %s", exc)
            health = None
        _show_storage_panel(cfg, health, session.blobs.total_blob_bytes())

        # ---- Panel 4: License ----
        _show_license_panel(session)


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_project_panel(session: ProjectSession, cfg: FieldVaultConfig) -> None:
    doc = session.document
    updated = session.documents.get_updated_at(session.autosave.key)
    lines = [
        f"Site:          [bold]{doc.site_name}[/]",
        f"Organization:  {doc.organization}",
        f"Group:         {doc.group_name}",
        f"Database:      {cfg.db_path}",
        f"Save state:    {session.autosave.status.value}",
        f"Last saved:    [dim]{updated or 'never'}[/]",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Project[/]", expand=False))


def _show_survey_panel(session: ProjectSession) -> None:
    doc = session.document
    missing = session.missing_blobs()
    lines = [
        f"Points: [bold]{len(doc.records)}[/]  |  Photos: [bold]{doc.photo_count()}[/]",
    ]
    if missing:
        lines.append(
            f"[yellow]✗ {len(missing)} full-resolution photos missing[/]  "
            "(fieldvault status --repair)"
        )
    else:
        lines.append("[green]✓[/] All full-resolution photos present")
    console.print(Panel("\n".join(lines), title="[bold]Survey Data[/]", expand=False))


def _show_storage_panel(
    cfg: FieldVaultConfig, health: StorageHealth | None, blob_bytes: int
) -> None:
    lines = [f"Photo blobs:  {blob_bytes / _MB:.1f} MB"]
    if health is None:
        lines.append("[dim]Disk usage unavailable.[/]")
    else:
        style = "yellow" if health.over(cfg.health.warn_percent) else "green"
        lines.append(
            f"Disk:         [{style}]{health.percent:.1f}%[/] used  "
            f"({health.free / _MB:,.0f} MB free)"
        )
    console.print(Panel("\n".join(lines), title="[bold]Storage[/]", expand=False))


def _show_license_panel(session: ProjectSession) -> None:
    status = session.entitlements.subscription_status()
    device = session.entitlements.device_id()
    if status.active:
        state = f"[green]active[/] ({status.days_left} days left)"
    else:
        state = "[yellow]inactive[/]"
    lines = [f"Device:   [bold]{device}[/]", f"License:  {state}"]
    console.print(Panel("\n".join(lines), title="[bold]License[/]", expand=False))
