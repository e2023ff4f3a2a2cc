"""Item commands: add, move, link, note, delete, open, export.

``add`` feeds files through the same drop / paste path a board surface uses:
the files become a drop (or paste) event dispatched to a Document the
IngestionPipeline listens on.
"""

from __future__ import annotations

import asyncio
import mimetypes
import webbrowser
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from tierboard.board.codec import from_data_uri
from tierboard.board.container import ContainerModel
from tierboard.board.context import BoardContext
from tierboard.board.events import Blob, Document, drop_event, paste_event
from tierboard.board.ingest import IngestionPipeline
from tierboard.cli.errors import (
    err_duplicate_item,
    err_file_not_found,
    err_item_not_found,
    err_tier_not_found,
    warn_no_link,
    warn_skipped_entries,
)
from tierboard.cli.session import open_board
from tierboard.db.models import Item
from tierboard.errors import ContainerNotFound, DuplicateItemError

console = Console()

_DbOption = Annotated[Path | None, typer.Option("--db", help="Board database path.")]


# ------------------------------------------------------------------
# add
# ------------------------------------------------------------------


def add_cmd(
    paths: Annotated[
        list[Path],
        typer.Argument(help="Image files to add to the holding area."),
    ],
    db: _DbOption = None,
    paste: Annotated[
        bool,
        typer.Option("--paste", help="Deliver the files as a clipboard paste instead of a drop."),
    ] = False,
) -> None:
    """Add images to the holding area (drop or paste)."""
    blobs: list[Blob] = []
    for path in paths:
        if not path.is_file():
            console.print(err_file_not_found(str(path)))
            raise typer.Exit(1)
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        blobs.append(Blob(mime_type=mime_type, data=path.read_bytes(), name=path.name))

    with open_board(db) as board:
        added = asyncio.run(_deliver(board, blobs, paste=paste))

    for item in sorted(added, key=lambda i: i.id):
        console.print(f"  [green]✓[/] Added item [bold]{item.id}[/]")
    skipped = len(blobs) - len(added)
    if skipped:
        console.print(warn_skipped_entries(skipped))
    if not added:
        raise typer.Exit(1)


async def _deliver(board: BoardContext, blobs: list[Blob], paste: bool) -> list[Item]:
    document = Document()
    pipeline = IngestionPipeline(board)
    pipeline.attach(document)
    try:
        event = paste_event(*blobs) if paste else drop_event(*blobs)
        document.dispatch(event)
        return await pipeline.drain()
    finally:
        pipeline.detach()


# ------------------------------------------------------------------
# move
# ------------------------------------------------------------------


def move_cmd(
    item_id: Annotated[int, typer.Argument(help="Item id.")],
    to: Annotated[
        str,
        typer.Option("--to", "-t", help="Destination tier name, or 'holding'."),
    ],
    index: Annotated[
        int | None,
        typer.Option("--index", "-i", help="Final position in the destination (default: end)."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """Move an item to a tier (or back to the holding area) at a position."""
    with open_board(db) as board:
        source, source_index = _find(board, item_id)
        destination = _container(board, to)

        session = board.coordinator.begin(source, source_index)
        target = len(destination) if index is None else index
        session.hover(destination, target)
        try:
            item = session.drop()
        except DuplicateItemError:
            console.print(err_duplicate_item(item_id, _label(board, destination.key)))
            raise typer.Exit(1) from None
        final = destination.index_of(item.id)
        console.print(
            f"[green]✓[/] Moved {item.id} → [bold]{escape(_label(board, destination.key))}[/] "
            f"at position {final}"
        )


# ------------------------------------------------------------------
# link / note
# ------------------------------------------------------------------


def link_cmd(
    item_id: Annotated[int, typer.Argument(help="Item id.")],
    url: Annotated[str, typer.Argument(help="URL to open on click; '' clears it.")],
    db: _DbOption = None,
) -> None:
    """Attach a link to an item."""
    with open_board(db) as board:
        container, _ = _find(board, item_id)
        container.update_field(item_id, "linkUrl", url)
    console.print(f"[green]✓[/] Link {'set' if url else 'cleared'} on {item_id}")


def note_cmd(
    item_id: Annotated[int, typer.Argument(help="Item id.")],
    text: Annotated[str, typer.Argument(help="Notes text; '' clears it.")],
    db: _DbOption = None,
) -> None:
    """Set the notes on an item."""
    with open_board(db) as board:
        container, _ = _find(board, item_id)
        container.update_field(item_id, "notes", text)
    console.print(f"[green]✓[/] Notes {'saved' if text else 'cleared'} on {item_id}")


# ------------------------------------------------------------------
# delete
# ------------------------------------------------------------------


def delete_cmd(
    item_id: Annotated[int, typer.Argument(help="Item id.")],
    db: _DbOption = None,
) -> None:
    """Delete an item from the board."""
    with open_board(db) as board:
        container, _ = _find(board, item_id)
        container.remove_by_id(item_id)
    console.print(f"[green]✓[/] Deleted {item_id}")


# ------------------------------------------------------------------
# open / export
# ------------------------------------------------------------------


def open_cmd(
    item_id: Annotated[int, typer.Argument(help="Item id.")],
    db: _DbOption = None,
) -> None:
    """Open the item's link in the browser."""
    with open_board(db) as board:
        _find(board, item_id)
        item = board.get_item(item_id)
        new_tab = board.config.board.open_links_in_new_tab
    if not item.has_link:
        console.print(warn_no_link(item_id))
        raise typer.Exit(0)
    webbrowser.open(item.link_url, new=2 if new_tab else 0)
    console.print(f"Opened {escape(item.link_url)}")


def export_cmd(
    item_id: Annotated[int, typer.Argument(help="Item id.")],
    output: Annotated[Path, typer.Argument(help="File to write the image to.")],
    db: _DbOption = None,
) -> None:
    """Write an item's normalised image to a file."""
    with open_board(db) as board:
        _find(board, item_id)
        item = board.get_item(item_id)
    mime_type, raw = from_data_uri(item.image_data)
    if not output.suffix:
        output = output.with_suffix(mimetypes.guess_extension(mime_type) or "")
    output.write_bytes(raw)
    console.print(f"[green]✓[/] Wrote {escape(str(output))} ({len(raw):,} bytes, {mime_type})")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _find(board: BoardContext, item_id: int) -> tuple[ContainerModel, int]:
    try:
        return board.find_item(item_id)
    except ContainerNotFound:
        console.print(err_item_not_found(item_id))
        raise typer.Exit(1) from None


def _container(board: BoardContext, ref: str) -> ContainerModel:
    try:
        return board.container(ref)
    except ContainerNotFound:
        console.print(err_tier_not_found(ref, [slot.name for slot in board.tiers]))
        raise typer.Exit(1) from None


def _label(board: BoardContext, key: str) -> str:
    for slot in board.tiers:
        if slot.container.key == key:
            return slot.name
    return "holding area"
