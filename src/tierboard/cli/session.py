"""Open a board for one CLI invocation."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from tierboard.board.context import BoardContext
from tierboard.cli.errors import err_no_board, err_storage_failed, err_storage_full
from tierboard.config import ConfigError, TierboardConfig, load_config
from tierboard.errors import StorageCapacityExceeded, StorageError

console = Console()


def notify_console(exc: StorageError) -> None:
    """Board notifier: one blocking-style notice per failed save."""
    if isinstance(exc, StorageCapacityExceeded):
        console.print(err_storage_full(exc))
    else:
        console.print(err_storage_failed(exc))


def resolve_config() -> TierboardConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        raise typer.Exit(1) from exc


def resolve_db(db: Path | None, config: TierboardConfig) -> Path:
    return db if db is not None else Path(config.storage.path)


def open_board(db: Path | None, *, create: bool = False) -> BoardContext:
    """Open the board at *db* (or the configured path).

    Exits with code 1 when the database is missing and *create* is False.
    """
    config = resolve_config()
    path = resolve_db(db, config)
    if not create and not path.exists():
        console.print(err_no_board(str(path)))
        raise typer.Exit(1)
    return BoardContext.open(path, config, notify=notify_console)
