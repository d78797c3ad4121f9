"""Persistence error types.

Only the write entry points (``SaveManager.save``, ``SaveManager.import_all``
and ``GameSession.persist``) raise these. Read paths log and degrade to
empty results instead.
"""

from __future__ import annotations

from dataclasses import dataclass


class StorageError(Exception):
    """Base class for persistence failures."""


@dataclass
class StorageUnavailableError(StorageError):
    """Raised when no key-value store is configured or reachable.

    Attributes:
        reason: Why the store could not be used.
    """

    reason: str = "no key-value store is available"

    def __post_init__(self) -> None:
        super().__init__(f"Storage unavailable: {self.reason}")


@dataclass
class SaveSerializationError(StorageError):
    """Raised when a snapshot cannot be encoded or written.

    Attributes:
        key: Store key being written.
        reason: Underlying failure.
    """

    key: str
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Cannot write '{self.key}': {self.reason}")


@dataclass
class InvalidFormatError(StorageError):
    """Raised when an import payload is not a JSON array of save records.

    Attributes:
        reason: What was wrong with the payload.
    """

    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Invalid save import format: {self.reason}")
