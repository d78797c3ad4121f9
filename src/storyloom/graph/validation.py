"""Structural validation of canonical story graphs.

Checks performed:
- The graph has at least one node, and no duplicated ids.
- Exactly one start node: a node no choice points at (restart sentinel
  references do not count).
- Every non-restart ``next_node_id`` names an existing node.
- Reachability: nodes with no incoming choice other than the start node,
  and nodes no directed path from the start reaches, are reported as
  warnings. The story stays playable.
- Choices with blank text are warnings.

Validation never raises. Everything it finds is a line on the returned
ValidationResult.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from storyloom.graph.algorithms import (
    duplicate_ids,
    find_start_candidates,
    incoming_counts,
    index_nodes,
    reachable_from,
)
from storyloom.models.story import RESTART_NODE_ID
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from storyloom.models.story import StoryNode

log = get_logger(__name__)

ValidationMode = Literal["strict", "integrity"]

NO_NODES_ERROR = "Story has no nodes"


@dataclass
class ValidationResult:
    """Outcome of validating a story graph.

    Attributes:
        errors: Problems that make the graph unusable.
        warnings: Problems worth surfacing that do not block play.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """True if no errors were found. Warnings do not count."""
        return not self.errors

    @property
    def summary(self) -> str:
        """Human-readable one-line summary."""
        if not self.errors and not self.warnings:
            return "valid"
        parts: list[str] = []
        if self.errors:
            parts.append(f"{len(self.errors)} errors")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warnings")
        return ", ".join(parts)

    def extend(self, other: ValidationResult) -> None:
        """Append another result's findings to this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def to_dict(self) -> dict[str, Any]:
        return {"isValid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def validate_story_graph(
    nodes: Sequence[StoryNode],
    *,
    start_node_id: str | None = None,
    mode: ValidationMode = "strict",
) -> ValidationResult:
    """Validate the structure of a canonical story graph.

    Args:
        nodes: Story nodes, in any order.
        start_node_id: Known entry point. When omitted, the start node is
            derived from structure and the candidate count is checked.
        mode: ``"strict"`` treats a missing or ambiguous start node as an
            error. ``"integrity"`` (used after authoring-graph conversion,
            where the start node comes from the editor's tag) reports it as
            a warning; dangling references stay errors either way.

    Returns:
        ValidationResult with errors and warnings.
    """
    result = ValidationResult()

    if not nodes:
        result.errors.append(NO_NODES_ERROR)
        return result

    for node_id in duplicate_ids(nodes):
        result.errors.append(f'Duplicate node id "{node_id}"')

    index = index_nodes(nodes)

    start_id = _check_start(nodes, index, start_node_id, mode, result)
    _check_references(nodes, index, result)
    _check_reachability(nodes, index, start_id, result)
    _check_choice_text(nodes, result)

    log.debug(
        "story_graph_validated",
        nodes=len(index),
        errors=len(result.errors),
        warnings=len(result.warnings),
        mode=mode,
    )
    return result


def _check_start(
    nodes: Sequence[StoryNode],
    index: dict[str, StoryNode],
    start_node_id: str | None,
    mode: ValidationMode,
    result: ValidationResult,
) -> str | None:
    """Resolve the start node, reporting count problems. Returns its id."""
    if start_node_id is not None:
        if start_node_id not in index:
            result.errors.append(f'Start node "{start_node_id}" does not exist')
            return None
        return start_node_id

    candidates = find_start_candidates(nodes)
    sink = result.errors if mode == "strict" else result.warnings
    if not candidates:
        sink.append("No start node found: every node is the target of a choice")
        return None
    if len(candidates) > 1:
        listed = ", ".join(f'"{c}"' for c in candidates)
        sink.append(f"Multiple start nodes found ({len(candidates)}): {listed}")
        return candidates[0]
    return candidates[0]


def _check_references(
    nodes: Sequence[StoryNode],
    index: dict[str, StoryNode],
    result: ValidationResult,
) -> None:
    for node in nodes:
        for choice in node.choices:
            target = choice.next_node_id
            if target != RESTART_NODE_ID and target not in index:
                result.errors.append(
                    f'Node "{node.id}" has choice "{choice.id}" '
                    f'pointing to non-existent node "{target}"'
                )


def _check_reachability(
    nodes: Sequence[StoryNode],
    index: dict[str, StoryNode],
    start_id: str | None,
    result: ValidationResult,
) -> None:
    if start_id is None:
        return

    referenced = incoming_counts(nodes)
    reachable = reachable_from(index, start_id)

    for node_id in index:
        if node_id == start_id:
            continue
        if referenced[node_id] == 0:
            result.warnings.append(
                f'Node "{node_id}" has no incoming choices and cannot be reached in normal play'
            )
        elif node_id not in reachable:
            result.warnings.append(f'Node "{node_id}" is not reachable from start node "{start_id}"')


def _check_choice_text(nodes: Sequence[StoryNode], result: ValidationResult) -> None:
    for node in nodes:
        for choice in node.choices:
            if not choice.text.strip():
                result.warnings.append(f'Node "{node.id}" has choice "{choice.id}" with empty text')
