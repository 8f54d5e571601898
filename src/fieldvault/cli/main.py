"""fieldvault CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from fieldvault.cli.export import export_cmd
from fieldvault.cli.init import init_cmd
from fieldvault.cli.license import license_app
from fieldvault.cli.photos import photos_app
from fieldvault.cli.points import points_app
from fieldvault.cli.reset import reset_cmd
from fieldvault.cli.site import site_cmd
from fieldvault.cli.status import status_cmd
from fieldvault.log import configure_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("fieldvault")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"fieldvault {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="fieldvault",
    help=(
        "fieldvault — local-first field survey store.\n\n"
        "  fieldvault point add   Record a survey point.\n"
        "  fieldvault photo add   Attach a photo to a point.\n"
        "  fieldvault export      Compile the project into one ZIP archive and deliver it."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """fieldvault — local-first field survey store."""
    configure_logging(verbose)


app.command("init")(init_cmd)
app.command("status")(status_cmd)
app.command("site")(site_cmd)
app.command("export")(export_cmd)
app.command("reset")(reset_cmd)
app.add_typer(points_app, name="point")
app.add_typer(photos_app, name="photo")
app.add_typer(license_app, name="license")


@app.command("version")
def version_cmd() -> None:
    """Show the installed fieldvault version."""
    typer.echo(f"fieldvault {_installed_version()}")


if __name__ == "__main__":
    app()
