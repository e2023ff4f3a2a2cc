"""SQLite connection layer."""

from __future__ import annotations

import sqlite3
from pathlib import Path

MEMORY = ":memory:"


class Database:
    """One board's SQLite database; owns the connection it opens."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing),
                or ``":memory:"`` for a throwaway board.
        """
        self.db_path = db_path if db_path == MEMORY else Path(db_path)
        self._conn: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def connect(self) -> sqlite3.Connection:
        """Open the connection (or return the one already open)."""
        if self._conn is None:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != MEMORY:
                conn.execute("PRAGMA journal_mode = WAL")
            self._conn = conn
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
