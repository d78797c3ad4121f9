"""Key-value stores and their errors.

The save manager lives in ``storyloom.persistence.saves``. It depends on
``storyloom.session``, which in turn uses the stores and errors here, so
it is not re-exported from this package.
"""

from __future__ import annotations

from storyloom.persistence.errors import (
    InvalidFormatError,
    SaveSerializationError,
    StorageError,
    StorageUnavailableError,
)
from storyloom.persistence.store import (
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    open_store,
)

__all__ = [
    "InvalidFormatError",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SaveSerializationError",
    "SqliteKeyValueStore",
    "StorageError",
    "StorageUnavailableError",
    "open_store",
]
