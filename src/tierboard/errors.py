"""Exception hierarchy for the tierboard core.

Storage and decode failures are contained by the component that produced
them (see ContainerModel and IngestionPipeline); only wiring errors such as
MissingBoardContext are meant to halt a caller.
"""

from __future__ import annotations


class TierboardError(Exception):
    """Base class for all tierboard errors."""


class StorageError(TierboardError):
    """A container record could not be written.

    Attributes:
        key: Container key being written (comma-joined for multi-key writes).
    """

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(message)


class StorageCapacityExceeded(StorageError):
    """A write would push the item store past its capacity.

    Attributes:
        required: Total bytes the store would hold after the write.
        capacity: Configured capacity in bytes, or None if the limit came
            from the database itself (disk full).
    """

    def __init__(self, key: str, required: int, capacity: int | None) -> None:
        self.required = required
        self.capacity = capacity
        limit = f"{capacity:,} bytes" if capacity is not None else "the disk limit"
        super().__init__(
            key,
            f"Storage is full: writing '{key}' needs {required:,} bytes, exceeding {limit}.",
        )


class CorruptRecordError(TierboardError, ValueError):
    """A stored container payload cannot be parsed back into items."""


class MalformedImageInput(TierboardError):
    """Input declared an image type but could not be decoded in time."""


class MissingBoardContext(TierboardError):
    """A board component was constructed without a board context.

    This is a wiring bug, not a runtime condition.
    """

    def __init__(self, component: str) -> None:
        self.component = component
        super().__init__(
            f"{component} requires a BoardContext; construct it through BoardContext.open()."
        )


class DuplicateItemError(TierboardError, ValueError):
    """An item id is already present in the target container."""

    def __init__(self, item_id: int, key: str) -> None:
        self.item_id = item_id
        self.key = key
        super().__init__(f"Item {item_id} already exists in container '{key}'.")


class UnknownItemError(TierboardError, LookupError):
    """No item with the given id (or index) exists in the container."""


class ContainerNotFound(TierboardError, LookupError):
    """No tier or holding area matches the requested name."""


class DuplicateTierError(TierboardError, ValueError):
    """Another tier already has this colour and name (and so the same storage key)."""

    def __init__(self, color: str, name: str) -> None:
        self.color = color
        self.name = name
        super().__init__(f"A tier with color '{color}' and name '{name}' already exists")
