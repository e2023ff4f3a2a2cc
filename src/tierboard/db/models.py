"""Domain models for the tierboard storage layer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

HOLDING_AREA_KEY = "holding-area"

# Accepted spellings for the two user-editable item fields.
_EDITABLE_FIELDS: dict[str, str] = {
    "link_url": "link_url",
    "linkUrl": "link_url",
    "notes": "notes",
}


def tier_key(color: str, name: str) -> str:
    """Storage key for a tier: ``tier_<color>_<name>``."""
    return f"tier_{color}_{name}"


def editable_field(name: str) -> str:
    """Normalise an editable field name, raising ValueError for anything else."""
    try:
        return _EDITABLE_FIELDS[name]
    except KeyError:
        raise ValueError(
            f"Field '{name}' is not editable; use one of: linkUrl, notes"
        ) from None


@dataclass(frozen=True)
class Item:
    """One image entry. ``image_data`` is a data URI and never changes."""

    id: int
    image_data: str
    link_url: str | None = None
    notes: str | None = None

    @property
    def has_link(self) -> bool:
        return bool(self.link_url)

    @property
    def has_notes(self) -> bool:
        return bool(self.notes)

    def with_field(self, name: str, value: str | None) -> Item:
        """Return a copy with *name* (linkUrl or notes) set to *value*."""
        return replace(self, **{editable_field(name): value})

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "imageData": self.image_data}
        if self.link_url is not None:
            data["linkUrl"] = self.link_url
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        """Build an Item from its stored form.

        Records written before the ``imageData`` rename carry the payload
        under ``url``; both spellings are accepted.
        """
        image_data = data.get("imageData", data.get("url"))
        if image_data is None:
            raise ValueError(f"Stored item {data.get('id')!r} has no image data")
        return cls(
            id=int(data["id"]),
            image_data=str(image_data),
            link_url=data.get("linkUrl"),
            notes=data.get("notes"),
        )


@dataclass
class Tier:
    """Shell-owned tier metadata. ``id`` is stable; ``color``/``name`` are editable."""

    id: str
    name: str
    color: str
    position: int = 0
    created_at: str | None = field(default=None, compare=False)

    @property
    def storage_key(self) -> str:
        return tier_key(self.color, self.name)
