"""fieldvault photo — attach and review photos on survey points.

The full-resolution image goes into the blob store under the photo id; the
document only gets a small inline preview plus the ``has_full_res`` flag.
"""

from __future__ import annotations

import uuid
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
from fieldvault.cli.errors import err_point_not_found, err_unreadable_image
from fieldvault.db.models import CaptureLocation, PhotoRecord, PhotoStatus
from fieldvault.previews import make_preview, to_jpeg

photos_app = typer.Typer(
    name="photo",
    help="Attach and review survey photos.",
    add_completion=False,
)


@photos_app.command("add")
def add_cmd(
    point: Annotated[str, typer.Argument(help="Point name.")],
    image: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Image file."),
    ],
    remarks: Annotated[Optional[str], typer.Option("--remarks", help="QA remarks.")] = None,
    at_point: Annotated[
        bool,
        typer.Option("--at-point", help="Record the point's coordinates as capture location."),
    ] = False,
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Attach IMAGE to a survey point."""
    cfg = load_cli_config(project_dir, db)
    raw = image.read_bytes()
    try:
        full_res = to_jpeg(raw)
        preview = make_preview(full_res, max_size=cfg.archive.preview_size)
    except ValueError:
        console.print(err_unreadable_image(str(image)))
        raise typer.Exit(1)

    with project_session(cfg) as session:
        record = session.document.find_record_by_name(point)
        if record is None:
            console.print(err_point_not_found(point))
            raise typer.Exit(1)

        photo_id = str(uuid.uuid4())
        # Blob first: a flagged photo must never point at a missing blob.
        session.blobs.put_blob(photo_id, full_res)
        photo = PhotoRecord(
            id=photo_id,
            preview=preview,
            remarks=remarks,
            location=(
                CaptureLocation(record.latitude, record.longitude) if at_point else None
            ),
            has_full_res=True,
        )
        session.autosave.mutate(lambda _doc: record.photos.append(photo))
        console.print(
            f"[green]✓[/] Photo {len(record.photos)} added to [bold]{point}[/] "
            f"({len(full_res) / 1024:.0f} KB)"
        )


@photos_app.command("review")
def review_cmd(
    point: Annotated[str, typer.Argument(help="Point name.")],
    index: Annotated[int, typer.Argument(min=1, help="Photo number (1-based).")],
    status: Annotated[
        PhotoStatus, typer.Option("--status", "-s", case_sensitive=False, help="QA result.")
    ],
    remarks: Annotated[Optional[str], typer.Option("--remarks", help="QA remarks.")] = None,
    project_dir: ProjectDirOption = Path("."),
    db: DbOption = None,
) -> None:
    """Set the QA status of a photo."""
    cfg = load_cli_config(project_dir, db)
    with project_session(cfg) as session:
        record = session.document.find_record_by_name(point)
        if record is None:
            console.print(err_point_not_found(point))
            raise typer.Exit(1)
        if index > len(record.photos):
            console.print(
                f"[red]Error:[/] '{point}' has {len(record.photos)} photos; no photo {index}."
            )
            raise typer.Exit(1)

        photo = record.photos[index - 1]

        def _review(_doc) -> None:
            photo.status = status
            if remarks is not None:
                photo.remarks = remarks

        session.autosave.mutate(_review)
        console.print(f"[green]✓[/] {point} photo {index}: {status.value}")
