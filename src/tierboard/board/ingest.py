"""Paste / drop ingestion into the holding area.

Per event:
  1. Filter:    keep entries whose declared type starts with ``image/``;
                drops carrying the in-board drag marker are rearrangements
                and are ignored here.
  2. Read:      take each accepted entry's raw bytes.
  3. Normalise: ImageCodec.encode() in a background task.
  4. Commit:    append a new Item to the holding area.

Every file in an event is processed independently; ids come from one
millisecond timestamp plus the entry's index in the event, so a batch never
collides with itself whatever order its tasks finish in.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable

from tierboard.board.codec import ImageCodec
from tierboard.board.container import ContainerModel
from tierboard.board.context import BoardContext, require_context
from tierboard.board.events import (
    DRAG_OVER,
    DRAG_START,
    DROP,
    PASTE,
    TIER_DRAG_MIME,
    Blob,
    ClipboardEvent,
    Document,
    DragEvent,
)
from tierboard.db.models import Item
from tierboard.errors import MalformedImageInput

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class IngestionPipeline:
    """Turns pasted and dropped images into holding-area items.

    Args:
        context: Board the pipeline feeds; required.
        codec: Override the board's codec (for testing).
        clock: Millisecond clock used to derive item ids.
    """

    def __init__(
        self,
        context: BoardContext | None,
        codec: ImageCodec | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._context = require_context(context, "IngestionPipeline")
        self._codec = codec or self._context.codec
        self._clock = clock
        self._pending: set[asyncio.Task[Item | None]] = set()
        self._document: Document | None = None

    @property
    def target(self) -> ContainerModel:
        return self._context.holding_area

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def attach(self, document: Document) -> None:
        """Register paste / drag listeners on *document*."""
        if self._document is not None:
            self.detach()
        document.add_listener(PASTE, self.on_paste)
        document.add_listener(DRAG_START, self.on_drag_start)
        document.add_listener(DRAG_OVER, self.on_drag_over)
        document.add_listener(DROP, self.on_drop)
        self._document = document

    def detach(self) -> None:
        """Remove every listener registered by :meth:`attach`."""
        document = self._document
        if document is None:
            return
        document.remove_listener(PASTE, self.on_paste)
        document.remove_listener(DRAG_START, self.on_drag_start)
        document.remove_listener(DRAG_OVER, self.on_drag_over)
        document.remove_listener(DROP, self.on_drop)
        self._document = None

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def on_paste(self, event: ClipboardEvent) -> list[asyncio.Task[Item | None]]:
        return self._schedule(event.entries)

    def on_drag_start(self, event: DragEvent) -> None:
        event.data_transfer.set_data(TIER_DRAG_MIME, "true")

    def on_drag_over(self, event: DragEvent) -> None:
        # Without this the surface never delivers the drop.
        event.prevent_default()

    def on_drop(self, event: DragEvent) -> list[asyncio.Task[Item | None]]:
        event.prevent_default()
        if event.data_transfer.get_data(TIER_DRAG_MIME) == "true":
            return []
        return self._schedule(event.data_transfer.files)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def ingest(self, entries: Iterable[Blob]) -> list[Item]:
        """Process *entries* as one batch and return the committed items."""
        tasks = self._schedule(entries)
        results = await asyncio.gather(*tasks)
        return [item for item in results if item is not None]

    async def drain(self) -> list[Item]:
        """Wait for every in-flight ingestion; return the items they committed."""
        committed: list[Item] = []
        while self._pending:
            batch = list(self._pending)
            self._pending.difference_update(batch)
            results = await asyncio.gather(*batch)
            committed.extend(item for item in results if item is not None)
        return committed

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _schedule(self, entries: Iterable[Blob]) -> list[asyncio.Task[Item | None]]:
        loop = asyncio.get_running_loop()
        batch_time = self._clock()
        tasks: list[asyncio.Task[Item | None]] = []
        for index, blob in enumerate(entries):
            if not blob.is_image:
                logger.debug("Ignoring non-image entry %r (%s)", blob.name, blob.mime_type)
                continue
            task = loop.create_task(self._ingest_one(blob, batch_time + index))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def _ingest_one(self, blob: Blob, item_id: int) -> Item | None:
        try:
            image_data = await self._codec.encode(blob.data)
        except MalformedImageInput as exc:
            logger.warning("Dropped %s: %s", blob.name or blob.mime_type, exc)
            return None

        target = self.target
        # Another batch, or an item since moved into a tier, may own this id.
        while self._context.has_item(item_id):
            item_id += 1
        item = Item(id=item_id, image_data=image_data, link_url="", notes="")
        target.append(item)
        return item
