"""Tests for the key-value stores."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

import pytest

from storyloom.config import StorageConfig
from storyloom.persistence import (
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    StorageError,
    StorageUnavailableError,
    open_store,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest) -> Iterator[KeyValueStore]:
    if request.param == "memory":
        yield MemoryKeyValueStore()
    else:
        sqlite_store = SqliteKeyValueStore()
        yield sqlite_store
        sqlite_store.close()


class TestKeyValueStore:
    def test_satisfies_protocol(self, store: KeyValueStore) -> None:
        assert isinstance(store, KeyValueStore)

    def test_get_missing(self, store: KeyValueStore) -> None:
        assert store.get("nope") is None

    def test_set_and_get(self, store: KeyValueStore) -> None:
        store.set("k", '{"a": 1}')
        assert store.get("k") == '{"a": 1}'

    def test_set_replaces(self, store: KeyValueStore) -> None:
        store.set("k", "one")
        store.set("k", "two")
        assert store.get("k") == "two"
        assert store.keys() == ["k"]

    def test_delete_reports_existence(self, store: KeyValueStore) -> None:
        store.set("k", "v")
        assert store.delete("k") is True
        assert store.delete("k") is False
        assert store.get("k") is None

    def test_keys_by_prefix_in_insertion_order(self, store: KeyValueStore) -> None:
        store.set("save-b", "1")
        store.set("other", "2")
        store.set("save-a", "3")
        assert store.keys("save-") == ["save-b", "save-a"]
        assert store.keys() == ["save-b", "other", "save-a"]

    def test_prefix_is_literal(self, store: KeyValueStore) -> None:
        """Prefix matching does not treat % or _ as wildcards."""
        store.set("a_1", "x")
        store.set("ab1", "y")
        store.set("a%", "z")
        assert store.keys("a_") == ["a_1"]
        assert store.keys("a%") == ["a%"]

    def test_unicode_round_trip(self, store: KeyValueStore) -> None:
        store.set("キー", "値 🐉")
        assert store.get("キー") == "値 🐉"


class TestSqliteKeyValueStore:
    def test_file_persists_between_connections(self, tmp_path: Path) -> None:
        db = tmp_path / "saves.db"
        first = SqliteKeyValueStore(db)
        first.set("k", "v")
        first.close()

        second = SqliteKeyValueStore(db)
        assert second.get("k") == "v"
        assert second.db_path == str(db)
        second.close()

    def test_errors_become_storage_errors(self) -> None:
        store = SqliteKeyValueStore()
        store.close()
        with pytest.raises(StorageError, match="get 'k' failed"):
            store.get("k")

    def test_accepts_existing_connection(self) -> None:
        conn = sqlite3.connect(":memory:", isolation_level=None)
        store = SqliteKeyValueStore(_conn=conn)
        store.set("k", "v")
        assert conn.execute("SELECT value FROM kv WHERE key = 'k'").fetchone() == ("v",)


class TestOpenStore:
    def test_memory_backend(self, tmp_path: Path) -> None:
        store = open_store(StorageConfig(backend="memory"), tmp_path)
        assert isinstance(store, MemoryKeyValueStore)

    def test_sqlite_backend_creates_directories(self, tmp_path: Path) -> None:
        config = StorageConfig(backend="sqlite", path="data/nested/store.db")
        store = open_store(config, tmp_path)
        assert isinstance(store, SqliteKeyValueStore)
        assert (tmp_path / "data" / "nested" / "store.db").exists()
        store.close()

    def test_unopenable_path(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        config = StorageConfig(backend="sqlite", path="blocker/store.db")
        with pytest.raises(StorageUnavailableError):
            open_store(config, tmp_path)
