"""Key-value stores for saves and session snapshots.

The rest of the package only sees the KeyValueStore protocol: string keys,
string (JSON) values. Two implementations ship here:

- MemoryKeyValueStore: a dict, for tests and throwaway sessions.
- SqliteKeyValueStore: one ``kv`` table in a SQLite file, opened in WAL
  mode so a CLI invocation can read while another writes.

Every store in a process may be shared by several subsystems, so callers
namespace their keys by prefix.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from storyloom.observability.logging import get_logger
from storyloom.persistence.errors import StorageError, StorageUnavailableError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from storyloom.config import StorageConfig

log = get_logger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal string-to-string store."""

    def get(self, key: str) -> str | None:
        """Return the value for key, or None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Create or replace the value for key."""
        ...

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if it existed."""
        ...

    def keys(self, prefix: str = "") -> list[str]:
        """All keys starting with prefix, in insertion order."""
        ...


class MemoryKeyValueStore:
    """In-process dict-backed store."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._data if k.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._data)


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS kv (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now'))
);
"""


class SqliteKeyValueStore:
    """SQLite-backed store. One row per key.

    Statements run in autocommit mode; each ``set`` is a single atomic
    ``INSERT ... ON CONFLICT`` so a reader never sees a half-written value.
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        *,
        _conn: sqlite3.Connection | None = None,
    ) -> None:
        """Open or create a SQLite key-value database.

        Args:
            db_path: Path to ``.db`` file, or ``":memory:"`` for in-memory.
            _conn: Pre-existing connection (for testing). If provided,
                   *db_path* is ignored.
        """
        if _conn is not None:
            self._conn = _conn
            self._db_path: str = ":memory:"
        else:
            self._db_path = str(db_path) if isinstance(db_path, Path) else db_path
            self._conn = sqlite3.connect(self._db_path, isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.executescript(_SCHEMA)

    @property
    def db_path(self) -> str:
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def get(self, key: str) -> str | None:
        with self._translate_errors("get", key):
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return None if row is None else row[0]

    def set(self, key: str, value: str) -> None:
        with self._translate_errors("set", key):
            self._conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = strftime('%Y-%m-%dT%H:%M:%f','now')",
                (key, value),
            )

    def delete(self, key: str) -> bool:
        with self._translate_errors("delete", key):
            cursor = self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        return cursor.rowcount > 0

    def keys(self, prefix: str = "") -> list[str]:
        with self._translate_errors("keys", prefix):
            rows = self._conn.execute(
                "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY rowid",
                (len(prefix), prefix),
            ).fetchall()
        return [row[0] for row in rows]

    @contextmanager
    def _translate_errors(self, operation: str, key: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            log.error("kv_store_error", operation=operation, key=key, db_path=self._db_path, error=str(e))
            msg = f"{operation} '{key}' failed: {e}"
            raise StorageError(msg) from e


def open_store(config: StorageConfig, project_path: Path) -> KeyValueStore:
    """Open the store a project is configured for.

    Raises:
        StorageUnavailableError: If the SQLite file cannot be opened.
    """
    if config.backend == "memory":
        return MemoryKeyValueStore()

    db_path = config.resolve_path(project_path)
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        store = SqliteKeyValueStore(db_path)
    except (OSError, sqlite3.Error) as e:
        raise StorageUnavailableError(f"cannot open {db_path}: {e}") from e
    log.debug("kv_store_opened", backend=config.backend, path=str(db_path))
    return store
