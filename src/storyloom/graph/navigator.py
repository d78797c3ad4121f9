"""Runtime navigation over a canonical story.

StoryNavigator turns story data (nodes, parsed JSON or a file) into a
LoadedStory: an id index plus the resolved start node. Each play session
owns its own navigator; there is no process-wide instance.

Start detection here trusts structure, not authoring tags: the start
node is the one node no choice points at. Story files may come in any of
these shapes:

- a bare array of story nodes;
- ``{"metadata": {...}, "story": [...]}``;
- an editor document ``{"nodes": [...], "edges": [...]}``, converted
  first;
- ``{"format": ..., "story": {"startNodeId": ..., "nodes": [...]}}`` as
  written by the generic JSON exporter;
- a legacy array (``{id, text, options}`` entries), migrated first.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from storyloom.graph.algorithms import find_start_candidates, index_nodes, reachable_from
from storyloom.graph.converter import (
    DEFAULT_RESTART_LABEL,
    convert_authoring_graph,
    load_authoring_project,
)
from storyloom.graph.errors import LoadError
from storyloom.graph.migration import LEGACY_START_ID, migrate_legacy_story
from storyloom.graph.stats import StoryStats, compute_story_stats
from storyloom.graph.validation import ValidationResult, validate_story_graph
from storyloom.models.schema import (
    Invalid,
    check_story_nodes,
    looks_like_authoring_project,
    looks_like_legacy_story,
)
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from storyloom.models.story import StoryNode

log = get_logger(__name__)


class LoadedStory:
    """An indexed story ready for play.

    Node lookups are dictionary hits. The node list is kept in load order
    for ``all_nodes`` and for validation.
    """

    def __init__(
        self,
        nodes: Sequence[StoryNode],
        start_node_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self._nodes = list(nodes)
        self._index = index_nodes(self._nodes)
        self._start_node_id = start_node_id
        self.metadata: dict[str, Any] = dict(metadata or {})

    @property
    def start_node_id(self) -> str:
        return self._start_node_id

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def get_node(self, node_id: str) -> StoryNode | None:
        """Return the node with this id, or None if there is none."""
        node = self._index.get(node_id)
        if node is None:
            log.warning("node_not_found", node_id=node_id)
        return node

    def get_start_node(self) -> StoryNode:
        return self._index[self._start_node_id]

    def get_next_node(self, current_id: str, choice_id: str) -> StoryNode | None:
        """Follow a choice from the current node.

        Returns None when the current node or the choice is unknown, and
        when the choice is a restart. Restart is a session reset, so
        callers check ``Choice.is_restart`` before calling this.
        """
        current = self.get_node(current_id)
        if current is None:
            return None

        choice = current.choice_by_id(choice_id)
        if choice is None:
            log.warning("choice_not_found", node_id=current_id, choice_id=choice_id)
            return None
        if choice.is_restart:
            return None

        log.debug("choice_followed", from_node=current_id, to_node=choice.next_node_id, choice_id=choice_id)
        return self.get_node(choice.next_node_id)

    def all_nodes(self) -> list[StoryNode]:
        """All nodes in load order, one per id."""
        return list(self._index.values())

    def reachable_node_ids(self) -> set[str]:
        """Ids reachable from the start node, start included."""
        return reachable_from(self._index, self._start_node_id)

    def get_stats(self) -> StoryStats:
        return compute_story_stats(self._nodes, self._start_node_id)

    def validate_story(self) -> ValidationResult:
        """Run the graph validator over the loaded nodes."""
        return validate_story_graph(self._nodes)


class StoryNavigator:
    """Builds LoadedStory instances from story data.

    Args:
        restart_label: Text of restart choices synthesized when an editor
            document is converted on load.
    """

    def __init__(self, restart_label: str = DEFAULT_RESTART_LABEL) -> None:
        self._restart_label = restart_label

    def load(
        self,
        nodes: Sequence[StoryNode],
        *,
        start_hint: str | None = None,
        take_first: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> LoadedStory:
        """Index nodes and determine the start node.

        Args:
            nodes: Canonical story nodes.
            start_hint: Start node id to use when it names an existing node.
            take_first: Break ties (or a lack of candidates) by taking the
                first candidate in input order, or the first node when no
                node qualifies.
            metadata: Free-form story metadata kept on the LoadedStory.

        Returns:
            LoadedStory.

        Raises:
            LoadError: If there are no nodes, or the start node cannot be
                determined.
        """
        if not nodes:
            raise LoadError("Story has no nodes")

        start_id = self._resolve_start(nodes, start_hint, take_first)
        story = LoadedStory(nodes, start_id, metadata)
        log.info("story_loaded", nodes=len(story), start_node_id=start_id)
        return story

    def load_payload(self, payload: Any, *, take_first: bool = False) -> LoadedStory:
        """Load parsed JSON in any accepted story shape.

        Raises:
            LoadError: If the shape is not recognised or the nodes fail
                their schema.
            MigrationError: If a legacy array fails its schema.
            ConversionError: If an editor document fails its schema.
        """
        if looks_like_authoring_project(payload):
            project = load_authoring_project(payload)
            result = convert_authoring_graph(
                project.nodes, project.edges, restart_label=self._restart_label
            )
            if result.errors:
                raise LoadError(f"Authoring graph conversion failed: {result.errors[0]}")
            for warning in result.warnings:
                log.warning("conversion_warning", detail=warning)
            return self.load(result.story, start_hint=result.start_node_id, take_first=take_first)

        metadata: dict[str, Any] | None = None
        start_hint: str | None = None
        if isinstance(payload, dict) and "story" in payload:
            raw_meta = payload.get("metadata")
            metadata = raw_meta if isinstance(raw_meta, dict) else None
            payload = payload["story"]
            # Generic export wraps nodes as {startNodeId, nodes}
            if isinstance(payload, dict) and "nodes" in payload:
                hint = payload.get("startNodeId")
                start_hint = hint if isinstance(hint, str) and hint else None
                payload = payload["nodes"]

        if looks_like_legacy_story(payload):
            nodes = migrate_legacy_story(payload)
            return self.load(
                nodes, start_hint=str(LEGACY_START_ID), take_first=take_first, metadata=metadata
            )

        checked = check_story_nodes(payload)
        if isinstance(checked, Invalid):
            raise LoadError(f"Invalid story data: {'; '.join(checked.reasons[:3])}")
        return self.load(checked.value, start_hint=start_hint, take_first=take_first, metadata=metadata)

    def load_file(self, path: Path, *, take_first: bool = False) -> LoadedStory:
        """Read a JSON story file and load it.

        Raises:
            LoadError: If the file cannot be read or is not valid JSON, or
                for any reason load_payload raises it.
        """
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise LoadError(f"Cannot read story file {path}: {e}") from e
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise LoadError(f"Story file {path} is not valid JSON: {e}") from e
        return self.load_payload(payload, take_first=take_first)

    def _resolve_start(
        self,
        nodes: Sequence[StoryNode],
        start_hint: str | None,
        take_first: bool,
    ) -> str:
        if start_hint is not None and any(node.id == start_hint for node in nodes):
            return start_hint

        candidates = find_start_candidates(nodes)
        if len(candidates) == 1:
            return candidates[0]

        if take_first:
            chosen = candidates[0] if candidates else nodes[0].id
            log.warning("start_node_ambiguous", candidates=len(candidates), chosen=chosen)
            return chosen

        if not candidates:
            raise LoadError("No start node found: every node is the target of a choice")
        raise LoadError("Multiple start nodes found", candidates=candidates)
