"""Shared pytest fixtures."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from tierboard.board.context import BoardContext
from tierboard.db.connection import Database
from tierboard.db.schema import initialize
from tierboard.db.store import ItemStore


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".tierboard.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_db):
    """Unbounded item store on the temporary database."""
    return ItemStore(tmp_db, capacity_bytes=None)


@pytest.fixture
def board(store):
    """Board with no tiers yet."""
    return BoardContext(store)


def make_image_bytes(width: int = 200, height: int = 100, mode: str = "RGB", fmt: str = "PNG") -> bytes:
    """Encode a solid-colour test image."""
    colors = {"RGBA": (200, 40, 40, 128), "RGB": (200, 40, 40)}
    color = colors.get(mode, 120)
    img = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image():
    """Factory fixture: ``make_image(width, height, mode, fmt) -> bytes``."""
    return make_image_bytes


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()
