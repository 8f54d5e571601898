"""fieldvault license — device identity and subscription state.

Commands:
  fieldvault license status   — active/inactive + days left
  fieldvault license device   — print the device id used for activation codes
"""

from __future__ import annotations

from pathlib import Path

import typer

from fieldvault.cli.common import (
    DbOption,
    ProjectDirOption,
    console,
    load_cli_config,
    project_session,
)

license_app = typer.Typer(
    name="license",
    help="Show device identity and subscription state.",
    add_completion=False,
)


@license_app.command("status")
def license_status_cmd(
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Show subscription state."""
    cfg = load_cli_config(project_dir, db)
    with project_session(cfg) as session:
        status = session.entitlements.subscription_status()
        device = session.entitlements.device_id()
        used = len(session.entitlements.consumed_codes())

    console.print(f"Device:   [bold]{device}[/]")
    if status.active:
        console.print(f"License:  [green]active[/] ({status.days_left} days left)")
    else:
        console.print("License:  [yellow]inactive[/]")
    console.print(f"Codes redeemed: {used}")


@license_app.command("device")
def license_device_cmd(
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Print the device id."""
    cfg = load_cli_config(project_dir, db)
    with project_session(cfg) as session:
        device = session.entitlements.device_id()
    typer.echo(device)
