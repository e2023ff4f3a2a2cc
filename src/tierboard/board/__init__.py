"""Tierboard core: containers, drag coordination, image ingestion."""

from tierboard.board.codec import ImageCodec
from tierboard.board.container import IGNORE_MARKER, SHARED_GROUP, ContainerModel, Slot
from tierboard.board.context import BoardContext, TierSlot, require_context
from tierboard.board.coordinator import DragCoordinator, DragSession
from tierboard.board.events import Blob, Document, paste_event, drop_event
from tierboard.board.ingest import IngestionPipeline

__all__ = [
    "BoardContext",
    "Blob",
    "ContainerModel",
    "Document",
    "DragCoordinator",
    "DragSession",
    "IGNORE_MARKER",
    "ImageCodec",
    "IngestionPipeline",
    "SHARED_GROUP",
    "Slot",
    "TierSlot",
    "drop_event",
    "paste_event",
    "require_context",
]
