"""Player session state.

A GameSession is either uninitialized or active. Ending a story is not a
state of its own: the player sits on an end node until they restart. All
progress lives in a SessionState, which is only ever changed through the
session's transition methods.

SessionState has a JSON form shared by session persistence and save
records: ``visited_nodes`` is written as a sorted array and
``start_time`` as an ISO-8601 string.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from storyloom.config import DEFAULT_SESSION_KEY
from storyloom.observability.logging import get_logger
from storyloom.persistence.errors import (
    SaveSerializationError,
    StorageError,
    StorageUnavailableError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from storyloom.graph.navigator import LoadedStory
    from storyloom.models.story import StoryNode
    from storyloom.persistence.store import KeyValueStore

log = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to a naive datetime. Aware values pass through."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC.

    Raises:
        ValueError: If value is not an ISO-8601 string.
    """
    if not isinstance(value, str):
        msg = f"expected an ISO-8601 string, got {type(value).__name__}"
        raise ValueError(msg)
    return ensure_aware(datetime.fromisoformat(value))


@dataclass
class SessionState:
    """Progress of one play-through.

    Attributes:
        current_node_id: Node the player is on.
        visited_nodes: Every node id entered, current one included.
        choices: Node id -> id of the choice last taken from it.
        start_time: When the play-through began.
        play_time: Seconds played.
        variables: Free-form story variables.
        inventory: Item names, in pick-up order.
    """

    current_node_id: str
    visited_nodes: set[str] = field(default_factory=set)
    choices: dict[str, str] = field(default_factory=dict)
    start_time: datetime = field(default_factory=_utcnow)
    play_time: float = 0.0
    variables: dict[str, Any] = field(default_factory=dict)
    inventory: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        # Serialised start times always carry an offset
        self.start_time = ensure_aware(self.start_time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentNodeId": self.current_node_id,
            "visitedNodes": sorted(self.visited_nodes),
            "choices": dict(self.choices),
            "startTime": self.start_time.isoformat(),
            "playTime": self.play_time,
            "variables": copy.deepcopy(self.variables),
            "inventory": list(self.inventory),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionState:
        """Rebuild a SessionState from its JSON form.

        Raises:
            KeyError: If ``currentNodeId`` is missing.
            TypeError: If a field has the wrong type.
            ValueError: If ``startTime`` is not ISO-8601.
        """
        if not isinstance(data, dict):
            msg = f"session state must be an object, got {type(data).__name__}"
            raise TypeError(msg)

        current = data["currentNodeId"]
        if not isinstance(current, str):
            msg = "currentNodeId must be a string"
            raise TypeError(msg)

        visited = data.get("visitedNodes", [])
        if not isinstance(visited, list):
            msg = "visitedNodes must be an array"
            raise TypeError(msg)

        raw_start = data.get("startTime")
        return cls(
            current_node_id=current,
            visited_nodes={str(node_id) for node_id in visited},
            choices={str(k): str(v) for k, v in dict(data.get("choices") or {}).items()},
            start_time=parse_timestamp(raw_start) if raw_start is not None else _utcnow(),
            play_time=float(data.get("playTime", 0.0)),
            variables=dict(data.get("variables") or {}),
            inventory=[str(item) for item in data.get("inventory") or []],
        )


class SessionStatus(Enum):
    """Lifecycle of a GameSession."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class GameSession:
    """Mutable play session for one story.

    Args:
        store: Where ``persist``/``restore`` keep the session. Optional.
        storage_key: Key of the persisted session in the store.
        clock: Returns the current time. Defaults to UTC now.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        storage_key: str = DEFAULT_SESSION_KEY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._storage_key = storage_key
        self._clock = clock or _utcnow
        self.status = SessionStatus.UNINITIALIZED
        self.state: SessionState | None = None
        self.current_node: StoryNode | None = None
        self.is_loading = False
        self.error: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE and self.state is not None

    # -- Transitions -----------------------------------------------------------

    def initialize(self, start_node_id: str) -> None:
        """Begin a fresh play-through at the start node."""
        self.state = SessionState(
            current_node_id=start_node_id,
            visited_nodes={start_node_id},
            start_time=self._clock(),
        )
        self.status = SessionStatus.ACTIVE
        self.error = None
        self.is_loading = False
        log.info("session_initialized", start_node_id=start_node_id)

    def make_choice(self, choice_id: str, next_node_id: str) -> None:
        """Record a choice and move on. Ignored before initialize."""
        if self.state is None:
            log.debug("choice_ignored_uninitialized", choice_id=choice_id)
            return
        self.state.choices[self.state.current_node_id] = choice_id
        self.state.current_node_id = next_node_id
        self.state.visited_nodes.add(next_node_id)
        log.debug("choice_made", choice_id=choice_id, next_node_id=next_node_id)

    def add_visited_node(self, node_id: str) -> None:
        if self.state is None:
            return
        self.state.visited_nodes.add(node_id)

    def set_current_node(self, node: StoryNode) -> None:
        """Show a node. Also moves the session there if one is active."""
        self.current_node = node
        if self.state is None:
            return
        self.state.current_node_id = node.id
        self.state.visited_nodes.add(node.id)

    def load_snapshot(self, state: SessionState) -> None:
        """Replace progress with a copy of a saved state."""
        self.state = copy.deepcopy(state)
        self.status = SessionStatus.ACTIVE
        self.current_node = None
        self.error = None
        self.is_loading = False
        log.info("session_snapshot_loaded", current_node_id=state.current_node_id)

    def restart(self) -> None:
        """Drop all progress."""
        self.state = None
        self.status = SessionStatus.UNINITIALIZED
        self.current_node = None
        self.error = None
        self.is_loading = False
        log.info("session_restarted")

    def clear_corrupted_state(self) -> None:
        """Drop all progress and the persisted session. Never raises."""
        self.restart()
        if self._store is None:
            return
        try:
            self._store.delete(self._storage_key)
        except Exception as e:
            log.error("session_purge_failed", key=self._storage_key, error=str(e))
        else:
            log.info("session_purged", key=self._storage_key)

    def set_error(self, message: str | None) -> None:
        self.error = message
        self.is_loading = False

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading

    def tick(self, seconds: float) -> None:
        """Add to play time. Ignored before initialize."""
        if self.state is None or seconds <= 0:
            return
        self.state.play_time += seconds

    # -- Queries ---------------------------------------------------------------

    def has_visited_node(self, node_id: str) -> bool:
        return self.state is not None and node_id in self.state.visited_nodes

    def visited_count(self) -> int:
        return 0 if self.state is None else len(self.state.visited_nodes)

    def is_session_valid(self, story: LoadedStory) -> bool:
        """True if every node the session knows about exists in story.

        Re-check after switching stories; reinitialize when this fails.
        """
        if self.state is None:
            return False
        if story.get_node(self.state.current_node_id) is None:
            return False
        return all(story.get_node(node_id) is not None for node_id in self.state.visited_nodes)

    # -- Persistence -----------------------------------------------------------

    def persist(self) -> None:
        """Write the session to the store. Clears the key when uninitialized.

        Raises:
            StorageUnavailableError: If no store was given.
            SaveSerializationError: If the state cannot be encoded.
        """
        if self._store is None:
            raise StorageUnavailableError("session has no store")
        if self.state is None:
            self._store.delete(self._storage_key)
            return
        try:
            encoded = json.dumps({"status": self.status.value, "state": self.state.to_dict()})
        except (TypeError, ValueError) as e:
            raise SaveSerializationError(self._storage_key, str(e)) from e
        self._store.set(self._storage_key, encoded)

    def restore(self) -> bool:
        """Load the persisted session, if any.

        A corrupted entry is purged and the session reset. An unreadable
        store is logged and leaves the session untouched.

        Returns:
            True if a session was restored.
        """
        if self._store is None:
            return False
        try:
            raw = self._store.get(self._storage_key)
        except StorageError as e:
            log.error("session_read_failed", key=self._storage_key, error=str(e))
            return False
        if raw is None:
            return False
        try:
            payload = json.loads(raw)
            state = SessionState.from_dict(payload["state"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.warning("session_restore_failed", key=self._storage_key, error=str(e))
            self.clear_corrupted_state()
            return False
        self.load_snapshot(state)
        return True
