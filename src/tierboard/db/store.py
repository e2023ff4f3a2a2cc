"""Durable per-container item storage.

Each container (the holding area or a tier) owns one JSON record in the
``containers`` table, keyed by its storage key. The store has no business
logic: it reads and writes ordered item lists and enforces a byte capacity
so a full store is reported instead of silently truncating data.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable, Mapping, Sequence

from tierboard.db.models import Item, Tier
from tierboard.errors import CorruptRecordError, StorageCapacityExceeded, StorageError

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY_BYTES = 5 * 1024 * 1024

# Suffix of the key an unreadable record is moved to.
QUARANTINE_SUFFIX = ".corrupt"


def encode_items(items: Iterable[Item]) -> str:
    """Serialize *items* to the compact JSON payload stored per container."""
    return json.dumps([item.to_dict() for item in items], separators=(",", ":"))


def decode_items(payload: str) -> list[Item]:
    """Parse a stored JSON payload back into Items (order preserved).

    Raises:
        CorruptRecordError: *payload* is not a JSON array of item objects.
    """
    try:
        raw = json.loads(payload) if payload else []
    except json.JSONDecodeError as exc:
        raise CorruptRecordError(f"Stored container payload is not valid JSON: {exc}") from exc
    if not isinstance(raw, list):
        raise CorruptRecordError("Stored container payload is not a JSON array")
    try:
        return [Item.from_dict(entry) for entry in raw]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise CorruptRecordError(f"Stored item is malformed: {exc}") from exc


def _record_size(key: str, payload: str) -> int:
    return len(key.encode("utf-8")) + len(payload.encode("utf-8"))


class ItemStore:
    """Key-value persistence of ordered item lists.

    Wraps an open sqlite3.Connection (schema initialised, see
    tierboard.db.schema.initialize). The connection is owned by the caller.

    Args:
        conn: Open database connection.
        capacity_bytes: Upper bound on the total size of all stored records
            (keys + payloads, UTF-8). ``None`` disables the check.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        capacity_bytes: int | None = DEFAULT_CAPACITY_BYTES,
    ) -> None:
        if capacity_bytes is not None and capacity_bytes < 1:
            raise ValueError("capacity_bytes must be >= 1 or None")
        self._conn = conn
        self.capacity_bytes = capacity_bytes

    # ------------------------------------------------------------------
    # Container records
    # ------------------------------------------------------------------

    def load(self, key: str) -> list[Item]:
        """Return the ordered items stored under *key*; empty if missing.

        Raises:
            CorruptRecordError: The stored payload cannot be parsed.
        """
        row = self._conn.execute(
            "SELECT payload FROM containers WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return []
        return decode_items(row["payload"])

    def save(self, key: str, items: Sequence[Item]) -> None:
        """Replace the record under *key* with *items*.

        Raises:
            StorageCapacityExceeded: The write would exceed capacity. The
                previously stored record is left untouched.
        """
        self.save_many({key: items})

    def save_many(self, records: Mapping[str, Sequence[Item]]) -> None:
        """Write several container records in one transaction.

        Either every record is written or none is, so a cross-container move
        never leaves the item duplicated or missing on disk.

        Raises:
            StorageCapacityExceeded: The combined write would exceed capacity.
            StorageError: The database refused the write for another reason.
        """
        if not records:
            return
        payloads = {key: encode_items(items) for key, items in records.items()}
        label = ",".join(payloads)
        required = self.usage(exclude=payloads.keys()) + sum(
            _record_size(k, p) for k, p in payloads.items()
        )
        if self.capacity_bytes is not None and required > self.capacity_bytes:
            raise StorageCapacityExceeded(label, required, self.capacity_bytes)

        try:
            for key, payload in payloads.items():
                self._conn.execute(
                    """
                    INSERT INTO containers (key, payload) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        payload = excluded.payload,
                        updated_at = datetime('now')
                    """,
                    (key, payload),
                )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            if "full" in str(exc).lower():
                raise StorageCapacityExceeded(label, required, None) from exc
            raise StorageError(label, f"Could not save '{label}': {exc}") from exc
        logger.debug("Saved %s (%d bytes total)", label, required)

    def delete(self, key: str) -> None:
        """Delete the record under *key* (no-op if missing).

        Raises:
            StorageError: The database refused the write.
        """
        try:
            self._delete_record(key)
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StorageError(key, f"Could not delete '{key}': {exc}") from exc

    def rename(self, old_key: str, new_key: str) -> None:
        """Move the record stored under *old_key* to *new_key*.

        Any record already stored under *new_key* is replaced. No-op when
        *old_key* has no record or both keys are equal.

        Raises:
            StorageError: The database refused the write; both records are
                left as they were.
        """
        try:
            moved = self._rename_record(old_key, new_key)
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StorageError(old_key, f"Could not move '{old_key}' to '{new_key}': {exc}") from exc
        if moved:
            logger.debug("Renamed container record %s -> %s", old_key, new_key)

    def quarantine(self, key: str) -> str:
        """Move an unreadable record aside so *key* reads as empty again.

        Returns the key the record now lives under. A record already
        quarantined for *key* is replaced.

        Raises:
            StorageError: The database refused the write.
        """
        target = key + QUARANTINE_SUFFIX
        self.rename(key, target)
        logger.warning("Moved unreadable record %s to %s", key, target)
        return target

    def keys(self) -> list[str]:
        """Return all stored container keys in alphabetical order."""
        rows = self._conn.execute("SELECT key FROM containers ORDER BY key").fetchall()
        return [r["key"] for r in rows]

    def usage(self, exclude: Iterable[str] = ()) -> int:
        """Return the bytes held by all records, skipping keys in *exclude*."""
        excluded = list(exclude)
        sql = (
            "SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(payload AS BLOB))), 0)"
            " FROM containers"
        )
        if excluded:
            placeholders = ",".join("?" * len(excluded))
            sql += f" WHERE key NOT IN ({placeholders})"
        return self._conn.execute(sql, excluded).fetchone()[0]

    def _delete_record(self, key: str) -> None:
        self._conn.execute("DELETE FROM containers WHERE key = ?", (key,))

    def _rename_record(self, old_key: str, new_key: str) -> bool:
        if old_key == new_key:
            return False
        exists = self._conn.execute(
            "SELECT 1 FROM containers WHERE key = ?", (old_key,)
        ).fetchone()
        if exists is None:
            return False
        self._conn.execute("DELETE FROM containers WHERE key = ?", (new_key,))
        self._conn.execute(
            "UPDATE containers SET key = ?, updated_at = datetime('now') WHERE key = ?",
            (new_key, old_key),
        )
        return True

    # ------------------------------------------------------------------
    # Tier records
    # ------------------------------------------------------------------

    def load_tiers(self) -> list[Tier]:
        """Return the stored tier list ordered by position."""
        rows = self._conn.execute(
            "SELECT id, position, color, name, created_at FROM tiers ORDER BY position"
        ).fetchall()
        return [_row_to_tier(r) for r in rows]

    def save_tiers(
        self,
        tiers: Sequence[Tier],
        *,
        rename: tuple[str, str] | None = None,
        delete: str | None = None,
    ) -> None:
        """Replace the stored tier list; positions follow the sequence order.

        A tier's record changes key together with its colour or name, so the
        record rename (or, for a removed tier, the record delete) is written
        in the same transaction as the list.

        Args:
            tiers: New tier list, top to bottom.
            rename: ``(old_key, new_key)`` of a container record to move.
            delete: Key of a container record to drop.

        Raises:
            StorageError: The database refused the write; the previous list
                and every container record are kept.
        """
        try:
            if rename is not None:
                self._rename_record(*rename)
            if delete is not None:
                self._delete_record(delete)
            self._conn.execute("DELETE FROM tiers")
            self._conn.executemany(
                "INSERT INTO tiers (id, position, color, name) VALUES (?, ?, ?, ?)",
                [(t.id, i, t.color, t.name) for i, t in enumerate(tiers)],
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StorageError("tiers", f"Could not save the tier list: {exc}") from exc
        for i, tier in enumerate(tiers):
            tier.position = i


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_tier(row: sqlite3.Row) -> Tier:
    return Tier(
        id=row["id"],
        position=row["position"],
        color=row["color"],
        name=row["name"],
        created_at=row["created_at"],
    )
