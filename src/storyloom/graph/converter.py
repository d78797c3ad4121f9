"""Authoring graph to canonical story conversion.

The visual editor keeps nodes and connections in separate lists. This
module folds the connections back into each node's ``choices``:

- A connection becomes a choice on its source node. Choice text comes
  from the connection label, then the choice attached to the connection,
  then the node's existing choice at the same position, then
  ``"Choice N"``.
- A node with no outgoing connections keeps the choices it already had.
- ``end`` nodes gain one restart choice unless they already have one.
- The start node is the one tagged ``start``. If none is tagged, the
  first node is promoted and a warning is reported.

Conversion is a pure function over immutable snapshots. Its output is
re-checked with the graph validator in integrity mode; any error yields
an empty story so callers keep whatever they had before.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from storyloom.graph.errors import ConversionError
from storyloom.graph.stats import StoryStats, compute_story_stats
from storyloom.graph.validation import validate_story_graph
from storyloom.models.schema import Invalid, check_authoring_project
from storyloom.models.story import RESTART_NODE_ID, Choice, StoryNode, nodes_to_dicts
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from storyloom.models.authoring import AuthoringEdge, AuthoringNode, AuthoringProject

log = get_logger(__name__)

DEFAULT_RESTART_LABEL = "Restart"


@dataclass
class ConversionResult:
    """Outcome of converting an authoring graph.

    Attributes:
        story: Canonical nodes, start node first. Empty on error.
        start_node_id: Id of the start node. Empty string on error.
        errors: Problems that prevented conversion.
        warnings: Problems that did not.
    """

    story: list[StoryNode] = field(default_factory=list)
    start_node_id: str = ""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def stats(self) -> StoryStats:
        """Statistics of the converted story."""
        return compute_story_stats(self.story, self.start_node_id or None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "story": nodes_to_dicts(self.story),
            "startNodeId": self.start_node_id,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def load_authoring_project(payload: Any) -> AuthoringProject:
    """Parse an editor document into typed nodes and edges.

    Raises:
        ConversionError: If the payload does not match the editor schema.
    """
    checked = check_authoring_project(payload)
    if isinstance(checked, Invalid):
        raise ConversionError(checked.reasons)
    return checked.value


def convert_authoring_graph(
    nodes: Sequence[AuthoringNode],
    edges: Sequence[AuthoringEdge],
    *,
    restart_label: str = DEFAULT_RESTART_LABEL,
) -> ConversionResult:
    """Convert editor nodes and connections into a canonical story.

    Args:
        nodes: Editor nodes, in canvas order.
        edges: Editor connections, in canvas order.
        restart_label: Text of synthesized restart choices.

    Returns:
        ConversionResult. ``story`` is empty whenever ``errors`` is not.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not nodes:
        errors.append("Authoring graph has no nodes")
        return _failed(errors, warnings)

    start_id = _resolve_start(nodes, errors, warnings)
    _check_authoring(nodes, edges, start_id, errors, warnings)
    if errors or start_id is None:
        return _failed(errors, warnings)

    outgoing: dict[str, list[AuthoringEdge]] = defaultdict(list)
    for edge in edges:
        outgoing[edge.source].append(edge)

    story = [_convert_node(node, outgoing.get(node.id, []), restart_label) for node in nodes]

    integrity = validate_story_graph(story, start_node_id=start_id, mode="integrity")
    errors.extend(integrity.errors)
    warnings.extend(integrity.warnings)
    if errors:
        return _failed(errors, warnings)

    result = ConversionResult(
        story=_order_story(story, start_id),
        start_node_id=start_id,
        errors=errors,
        warnings=warnings,
    )
    log.info(
        "authoring_graph_converted",
        nodes=len(result.story),
        start_node_id=start_id,
        warnings=len(warnings),
    )
    return result


def convert_or_raise(
    nodes: Sequence[AuthoringNode],
    edges: Sequence[AuthoringEdge],
    *,
    restart_label: str = DEFAULT_RESTART_LABEL,
) -> ConversionResult:
    """Like convert_authoring_graph, but raise on any error.

    Raises:
        ConversionError: Listing every conversion error.
    """
    result = convert_authoring_graph(nodes, edges, restart_label=restart_label)
    if result.errors:
        raise ConversionError(result.errors)
    return result


def _failed(errors: list[str], warnings: list[str]) -> ConversionResult:
    log.warning("authoring_graph_conversion_failed", errors=len(errors), first_error=errors[0])
    return ConversionResult(story=[], start_node_id="", errors=errors, warnings=warnings)


def _resolve_start(
    nodes: Sequence[AuthoringNode],
    errors: list[str],
    warnings: list[str],
) -> str | None:
    tagged = [node.id for node in nodes if node.node_type == "start"]
    if len(tagged) == 1:
        return tagged[0]
    if len(tagged) > 1:
        listed = ", ".join(f'"{node_id}"' for node_id in tagged)
        errors.append(f"Multiple start nodes found ({len(tagged)}): {listed}")
        return None

    promoted = nodes[0].id
    warnings.append(f'No start node tagged; using first node "{promoted}" as start')
    return promoted


def _check_authoring(
    nodes: Sequence[AuthoringNode],
    edges: Sequence[AuthoringEdge],
    start_id: str | None,
    errors: list[str],
    warnings: list[str],
) -> None:
    """Editor-level checks run before any node is converted."""
    node_ids = {node.id for node in nodes}
    sources = {edge.source for edge in edges}
    targets = {edge.target for edge in edges}

    for edge in edges:
        label = edge.id or f"{edge.source}->{edge.target}"
        if edge.source not in node_ids:
            errors.append(f'Connection "{label}" has missing source node "{edge.source}"')
        if edge.target not in node_ids:
            errors.append(f'Connection "{label}" has missing target node "{edge.target}"')

    if not any(node.node_type == "end" for node in nodes):
        warnings.append("No end node found")

    for node in nodes:
        name = node.story_node.title or node.id
        if node.node_type != "end" and node.id not in sources and not node.story_node.choices:
            warnings.append(f'Node "{name}" ({node.id}) has no outgoing connections')
        if node.id != start_id and node.id not in targets:
            warnings.append(f'Node "{name}" ({node.id}) has no incoming connections')


def _convert_node(
    node: AuthoringNode,
    outgoing: Sequence[AuthoringEdge],
    restart_label: str,
) -> StoryNode:
    original = node.story_node.choices
    choices = [_edge_to_choice(node.id, index, edge, original) for index, edge in enumerate(outgoing)]

    if not choices and original:
        # Edit in progress: connections not drawn yet
        choices = [choice.model_copy(deep=True) for choice in original]

    if node.node_type == "end" and not any(c.is_restart for c in choices):
        choices.append(
            Choice(id=f"restart_{node.id}", text=restart_label, next_node_id=RESTART_NODE_ID)
        )

    return node.story_node.model_copy(update={"choices": choices}, deep=True)


def _edge_to_choice(
    node_id: str,
    index: int,
    edge: AuthoringEdge,
    original: Sequence[Choice],
) -> Choice:
    attached = edge.choice
    text = (
        edge.label
        or (attached.text if attached else None)
        or (original[index].text if index < len(original) else None)
        or f"Choice {index + 1}"
    )
    return Choice(
        id=edge.id or f"choice_{node_id}_{index}",
        text=text,
        next_node_id=edge.target,
        conditions=[c.model_copy() for c in attached.conditions] if attached else [],
        consequences=[e.model_copy() for e in attached.consequences] if attached else [],
    )


def _order_story(story: list[StoryNode], start_id: str) -> list[StoryNode]:
    """Start node first, then by numeric id if every id is an integer."""
    start = [node for node in story if node.id == start_id]
    rest = [node for node in story if node.id != start_id]

    if all(_is_int(node.id) for node in rest):
        rest.sort(key=lambda node: int(node.id))
    else:
        rest.sort(key=lambda node: node.id)
    return start + rest


def _is_int(value: str) -> bool:
    try:
        int(value)
    except ValueError:
        return False
    return True
