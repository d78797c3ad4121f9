"""Named save slots over a key-value store.

Each save is one store entry: key ``<prefix><save id>``, value the JSON
form of a SaveRecord. Save ids start with a zero-padded nanosecond stamp
that strictly increases per manager, so ids sort in creation order.

Only ``save`` and ``import_all`` raise. ``load``, ``list_saves``,
``delete`` and ``stats`` log storage or decoding problems and degrade to
None, empty or False.
"""

from __future__ import annotations

import copy
import json
import secrets
import time
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from storyloom.config import DEFAULT_MAX_SAVES, DEFAULT_SAVE_PREFIX
from storyloom.models.schema import Invalid, check_save_record_shape
from storyloom.observability.logging import get_logger
from storyloom.persistence.errors import (
    InvalidFormatError,
    SaveSerializationError,
    StorageError,
    StorageUnavailableError,
)
from storyloom.session.state import SessionState, ensure_aware, parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Callable

    from storyloom.config import SavesConfig
    from storyloom.persistence.store import KeyValueStore

log = get_logger(__name__)


@dataclass(frozen=True)
class SaveRecord:
    """An immutable snapshot of a session.

    Attributes:
        id: Save id (without the store key prefix).
        name: Display name.
        game_state: The saved session state.
        timestamp: When the save was made.
        story_progress: Number of visited nodes at save time.
    """

    id: str
    name: str
    game_state: SessionState
    timestamp: datetime
    story_progress: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "gameState": self.game_state.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "storyProgress": self.story_progress,
        }

    @classmethod
    def from_dict(cls, data: Any) -> SaveRecord:
        """Rebuild a record from its JSON form.

        Raises:
            ValueError: If the shape check fails or a timestamp is malformed.
            KeyError: If a required field is missing.
            TypeError: If a field has the wrong type.
        """
        checked = check_save_record_shape(data)
        if isinstance(checked, Invalid):
            raise ValueError("; ".join(checked.reasons))
        state = SessionState.from_dict(data["gameState"])
        progress = data.get("storyProgress")
        return cls(
            id=data["id"],
            name=data["name"],
            game_state=state,
            timestamp=parse_timestamp(data["timestamp"]),
            story_progress=int(progress) if progress is not None else len(state.visited_nodes),
        )


@dataclass(frozen=True)
class SaveStats:
    """Summary of stored saves.

    Attributes:
        total_saves: Number of readable saves.
        total_size_kb: Encoded size of those saves, in KiB, two decimals.
        oldest_save: Timestamp of the oldest save, or None.
        newest_save: Timestamp of the newest save, or None.
    """

    total_saves: int
    total_size_kb: float
    oldest_save: datetime | None
    newest_save: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSaves": self.total_saves,
            "totalSizeKB": self.total_size_kb,
            "oldestSave": self.oldest_save.isoformat() if self.oldest_save else None,
            "newestSave": self.newest_save.isoformat() if self.newest_save else None,
        }


def _encode(record: SaveRecord) -> str:
    return json.dumps(record.to_dict(), ensure_ascii=False)


class SaveManager:
    """Create, list and prune save slots.

    Args:
        store: Backing key-value store. ``None`` means no store is
            reachable: writes raise StorageUnavailableError and reads
            return nothing.
        key_prefix: Namespace for save keys in a shared store.
        max_saves: Number of saves kept. Oldest are evicted first.
        clock: Returns the current time. Defaults to UTC now.
    """

    def __init__(
        self,
        store: KeyValueStore | None,
        *,
        key_prefix: str = DEFAULT_SAVE_PREFIX,
        max_saves: int = DEFAULT_MAX_SAVES,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_saves < 1:
            msg = f"max_saves must be at least 1, got {max_saves}"
            raise ValueError(msg)
        self._store = store
        self._prefix = key_prefix
        self._max_saves = max_saves
        self._clock = clock or (lambda: datetime.now(UTC))
        self._last_stamp = 0

    @classmethod
    def from_config(cls, store: KeyValueStore | None, config: SavesConfig) -> SaveManager:
        return cls(store, key_prefix=config.key_prefix, max_saves=config.max_saves)

    @property
    def max_saves(self) -> int:
        return self._max_saves

    def _key(self, save_id: str) -> str:
        return f"{self._prefix}{save_id}"

    def _next_id(self) -> str:
        stamp = max(time.time_ns(), self._last_stamp + 1)
        self._last_stamp = stamp
        return f"{stamp:020d}-{secrets.token_hex(3)}"

    def _require_store(self) -> KeyValueStore:
        if self._store is None:
            raise StorageUnavailableError("no key-value store is configured for saves")
        return self._store

    # -- Writes ----------------------------------------------------------------

    async def save(self, name: str, state: SessionState) -> str:
        """Store a snapshot of state and prune old saves.

        Args:
            name: Display name. Blank names become ``"Save <date>"``.
            state: Session state to snapshot. It is copied, not shared.

        Returns:
            The new save id.

        Raises:
            StorageUnavailableError: If there is no store.
            SaveSerializationError: If the state cannot be encoded or the
                store rejects the write.
        """
        store = self._require_store()
        timestamp = ensure_aware(self._clock())
        save_id = self._next_id()
        key = self._key(save_id)
        try:
            record = SaveRecord(
                id=save_id,
                name=name.strip() or f"Save {timestamp.date().isoformat()}",
                game_state=copy.deepcopy(state),
                timestamp=timestamp,
                story_progress=len(state.visited_nodes),
            )
            encoded = _encode(record)
        except (TypeError, ValueError, copy.Error) as e:
            raise SaveSerializationError(key, str(e)) from e
        try:
            store.set(key, encoded)
        except StorageError as e:
            raise SaveSerializationError(key, str(e)) from e

        log.info("game_saved", save_id=save_id, name=record.name, progress=record.story_progress)
        self._enforce_retention()
        return save_id

    async def import_all(self, json_text: str) -> int:
        """Import records produced by export_all.

        Each valid record is saved again under a fresh id and timestamp.
        Records that fail the shape check are skipped.

        Returns:
            Number of records imported.

        Raises:
            InvalidFormatError: If json_text is not a JSON array.
            StorageUnavailableError: If there is no store.
            SaveSerializationError: If a write fails.
        """
        self._require_store()
        try:
            payload = json.loads(json_text)
        except (json.JSONDecodeError, TypeError) as e:
            raise InvalidFormatError(str(e)) from e
        if not isinstance(payload, list):
            raise InvalidFormatError(f"expected a JSON array, got {type(payload).__name__}")

        imported = 0
        for position, item in enumerate(payload):
            checked = check_save_record_shape(item)
            if isinstance(checked, Invalid):
                log.debug("save_import_skipped", position=position, reasons=checked.reasons)
                continue
            try:
                state = SessionState.from_dict(item["gameState"])
            except (KeyError, TypeError, ValueError) as e:
                log.debug("save_import_skipped", position=position, reasons=[str(e)])
                continue
            await self.save(item["name"], state)
            imported += 1

        log.info("saves_imported", imported=imported, skipped=len(payload) - imported)
        return imported

    def _enforce_retention(self) -> None:
        saves = self.list_saves()
        evicted = saves[self._max_saves :]
        for record in evicted:
            self.delete(record.id)
        if evicted:
            log.info("old_saves_evicted", count=len(evicted), kept=self._max_saves)

    # -- Reads -----------------------------------------------------------------

    def load(self, save_id: str) -> SaveRecord | None:
        """Return the save with this id, or None if missing or unreadable."""
        if self._store is None:
            return None
        try:
            raw = self._store.get(self._key(save_id))
        except StorageError as e:
            log.error("save_read_failed", save_id=save_id, error=str(e))
            return None
        if raw is None:
            return None
        try:
            record = SaveRecord.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.warning("save_corrupted", save_id=save_id, error=str(e))
            return None
        if record.id != save_id:
            # The store key is the identity; retention deletes by it
            log.debug("save_id_mismatch", save_id=save_id, stored_id=record.id)
            record = replace(record, id=save_id)
        return record

    def list_saves(self) -> list[SaveRecord]:
        """All readable saves, newest first. Unreadable entries are skipped."""
        if self._store is None:
            return []
        try:
            keys = self._store.keys(self._prefix)
        except StorageError as e:
            log.error("save_listing_failed", error=str(e))
            return []

        records = [self.load(key[len(self._prefix) :]) for key in keys]
        saves = [record for record in records if record is not None]
        saves.sort(key=lambda r: (r.timestamp, r.id), reverse=True)
        return saves

    def delete(self, save_id: str) -> bool:
        """Remove a save. Returns False if it did not exist or could not be removed."""
        if self._store is None:
            return False
        try:
            removed = self._store.delete(self._key(save_id))
        except StorageError as e:
            log.error("save_delete_failed", save_id=save_id, error=str(e))
            return False
        if removed:
            log.debug("save_deleted", save_id=save_id)
        return removed

    def export_all(self) -> str:
        """Serialise every readable save as a JSON array."""
        return json.dumps([r.to_dict() for r in self.list_saves()], indent=2, ensure_ascii=False)

    def stats(self) -> SaveStats:
        saves = self.list_saves()
        size = sum(len(_encode(record).encode("utf-8")) for record in saves)
        return SaveStats(
            total_saves=len(saves),
            total_size_kb=round(size / 1024, 2),
            oldest_save=saves[-1].timestamp if saves else None,
            newest_save=saves[0].timestamp if saves else None,
        )
