"""Tests for the Database connection layer."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from tierboard.db.connection import Database


def test_connect_creates_file(tmp_path):
    db_path = tmp_path / ".tierboard.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_foreign_keys_enabled(tmp_path):
    conn = Database(tmp_path / ".tierboard.db").connect()
    result = conn.execute("PRAGMA foreign_keys").fetchone()[0]
    conn.close()
    assert result == 1


def test_wal_journal_mode(tmp_path):
    conn = Database(tmp_path / ".tierboard.db").connect()
    mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    conn.close()
    assert mode == "wal"


def test_row_factory_set(tmp_path):
    conn = Database(tmp_path / ".tierboard.db").connect()
    conn.execute("CREATE TABLE t (x INTEGER)")
    conn.execute("INSERT INTO t VALUES (42)")
    row = conn.execute("SELECT x FROM t").fetchone()
    conn.close()
    assert row["x"] == 42


def test_in_memory_board():
    db = Database(":memory:")
    assert db.db_path == ":memory:"
    conn = db.connect()
    assert conn.execute("SELECT 1").fetchone()[0] == 1
    db.close()


def test_close_closes_connection(tmp_path):
    db = Database(tmp_path / ".tierboard.db")
    conn = db.connect()
    conn.execute("CREATE TABLE t (x INTEGER)")
    db.close()
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")
    assert not db.is_open


def test_accepts_path_str(tmp_path):
    db = Database(str(tmp_path / ".tierboard.db"))
    assert isinstance(db.db_path, Path)


def test_connect_reuses_open_connection(tmp_path):
    db = Database(tmp_path / ".tierboard.db")
    first = db.connect()
    assert db.connect() is first
    db.close()
    db.close()
    assert not db.is_open
