"""Shared CLI plumbing: config loading and session open/close with error display."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from fieldvault.cli.errors import err_config, err_no_db, err_storage_unavailable, warn_unsaved
from fieldvault.config import ConfigError, FieldVaultConfig, load_config
from fieldvault.errors import StorageUnavailableError
from fieldvault.session import ProjectSession

console = Console()

ProjectDirOption = Annotated[
    Path,
    typer.Option("--project-dir", "-C", help="Project directory (config + relative paths)."),
]
DbOption = Annotated[
    Optional[Path],
    typer.Option("--db", help="Override the database path."),
]


def load_cli_config(project_dir: Path, db: Path | None = None) -> FieldVaultConfig:
    """Load config for *project_dir*, apply the --db flag, exit 1 on error."""
    try:
        cfg = load_config(project_dir)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)
    if db is not None:
        cfg.storage.db_path = str(db)
    return cfg


@contextmanager
def project_session(cfg: FieldVaultConfig, *, must_exist: bool = True) -> Iterator[ProjectSession]:
    """Open a session for a command and always flush on the way out."""
    if must_exist and not cfg.db_path.exists():
        console.print(err_no_db(str(cfg.db_path)))
        raise typer.Exit(1)

    try:
        session = ProjectSession.open(cfg)
    except StorageUnavailableError as exc:
        console.print(err_storage_unavailable(str(exc)))
        raise typer.Exit(1)

    try:
        yield session
    except StorageUnavailableError as exc:
        console.print(err_storage_unavailable(str(exc)))
        raise typer.Exit(1)
    finally:
        if not session.close():
            console.print(warn_unsaved(session.autosave.key))
