"""Board-level input events and the listener registry that dispatches them.

These mirror the document-level paste / drag events a board surface
receives. ``Document`` plays the role of the event target: components
register listeners by event type and the surface dispatches events to them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Set on drags that start inside the board so a drop can tell a
# rearrangement apart from external files.
TIER_DRAG_MIME = "application/x-tier"

PASTE = "paste"
DRAG_START = "dragstart"
DRAG_OVER = "dragover"
DROP = "drop"


@dataclass
class Blob:
    """A pasted or dropped entry: declared MIME type plus raw bytes."""

    mime_type: str
    data: bytes
    name: str = ""

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


@dataclass
class DataTransfer:
    """Payload carried by a drag gesture."""

    files: list[Blob] = field(default_factory=list)
    data: dict[str, str] = field(default_factory=dict)

    def set_data(self, mime_type: str, value: str) -> None:
        self.data[mime_type] = value

    def get_data(self, mime_type: str) -> str:
        return self.data.get(mime_type, "")


@dataclass
class BoardEvent:
    type: str
    default_prevented: bool = field(default=False, init=False)

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass
class ClipboardEvent(BoardEvent):
    entries: list[Blob] = field(default_factory=list)


@dataclass
class DragEvent(BoardEvent):
    data_transfer: DataTransfer = field(default_factory=DataTransfer)


def paste_event(*entries: Blob) -> ClipboardEvent:
    return ClipboardEvent(type=PASTE, entries=list(entries))


def drop_event(*files: Blob, data: dict[str, str] | None = None) -> DragEvent:
    return DragEvent(type=DROP, data_transfer=DataTransfer(files=list(files), data=dict(data or {})))


Listener = Callable[[BoardEvent], object]


class Document:
    """Listener registry keyed by event type."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def add_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.setdefault(event_type, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, []))

    def dispatch(self, event: BoardEvent) -> bool:
        """Deliver *event* to its listeners; False if default handling was prevented."""
        for listener in list(self._listeners.get(event.type, [])):
            listener(event)
        logger.debug("Dispatched %s (default prevented: %s)", event.type, event.default_prevented)
        return not event.default_prevented
