"""Traversal algorithms over canonical story graphs.

Pure functions; nothing here mutates a node. All traversals are
iterative and bounded by a visited set, so cyclic graphs and very deep
graphs terminate without touching the recursion limit.

The restart sentinel is never followed: it is a session reset, not an
edge.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from storyloom.models.story import RESTART_NODE_ID

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from storyloom.models.story import StoryNode


def index_nodes(nodes: Iterable[StoryNode]) -> dict[str, StoryNode]:
    """Build an id -> node map. Later duplicates do not replace earlier ones."""
    index: dict[str, StoryNode] = {}
    for node in nodes:
        index.setdefault(node.id, node)
    return index


def duplicate_ids(nodes: Iterable[StoryNode]) -> list[str]:
    """Return ids that occur more than once, in first-seen order."""
    counts = Counter(node.id for node in nodes)
    return [node_id for node_id, count in counts.items() if count > 1]


def outgoing_targets(node: StoryNode) -> list[str]:
    """Real (non-restart) targets of a node's choices, in choice order."""
    return [c.next_node_id for c in node.choices if c.next_node_id != RESTART_NODE_ID]


def incoming_counts(nodes: Iterable[StoryNode]) -> Counter[str]:
    """Count non-restart references to each target id."""
    counts: Counter[str] = Counter()
    for node in nodes:
        counts.update(outgoing_targets(node))
    return counts


def find_start_candidates(nodes: Iterable[StoryNode]) -> list[str]:
    """Ids of nodes that no choice points at, in input order.

    A well-formed story has exactly one.
    """
    node_list = list(nodes)
    referenced = incoming_counts(node_list)
    seen: set[str] = set()
    candidates: list[str] = []
    for node in node_list:
        if node.id in seen:
            continue
        seen.add(node.id)
        if referenced[node.id] == 0:
            candidates.append(node.id)
    return candidates


def reachable_from(index: Mapping[str, StoryNode], start_id: str) -> set[str]:
    """Ids reachable from start_id by any directed path (start included).

    Dangling targets are ignored. Returns an empty set if start_id is not
    in the index.
    """
    if start_id not in index:
        return set()

    reachable: set[str] = set()
    stack = [start_id]
    while stack:
        node_id = stack.pop()
        if node_id in reachable:
            continue
        reachable.add(node_id)
        for target in outgoing_targets(index[node_id]):
            if target in index and target not in reachable:
                stack.append(target)
    return reachable


def _expandable_children(node: StoryNode) -> Iterator[str]:
    # Endings contribute their own depth but are never expanded
    if node.is_terminal:
        return iter(())
    return iter(outgoing_targets(node))


def compute_max_depth(index: Mapping[str, StoryNode], start_id: str) -> int:
    """Length, in choices, of the longest simple path from the start node.

    Depth-first over an explicit stack. The visited set is path-local: a
    node joins it on entry and leaves it on backtrack, so a node reachable
    along several routes (diamonds) is measured on each of them, while a
    node already on the active path is skipped (cycle cut). Endings and
    restart-only nodes terminate a path; dangling targets are skipped.

    Note:
        Enumerates simple paths, so cost grows with the number of distinct
        routes through the graph, not just its size.

    Args:
        index: id -> node map.
        start_id: Entry point.

    Returns:
        Maximum depth (0 for a lone start node or an unknown start id).
    """
    start = index.get(start_id)
    if start is None:
        return 0

    best = 0
    on_path = {start_id}
    stack: list[tuple[str, int, Iterator[str]]] = [(start_id, 0, _expandable_children(start))]

    while stack:
        node_id, depth, children = stack[-1]
        child_id = next(children, None)
        if child_id is None:
            stack.pop()
            on_path.discard(node_id)
            continue
        if child_id in on_path or child_id not in index:
            continue
        child_depth = depth + 1
        best = max(best, child_depth)
        on_path.add(child_id)
        stack.append((child_id, child_depth, _expandable_children(index[child_id])))

    return best
