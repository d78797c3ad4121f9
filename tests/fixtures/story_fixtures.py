"""Builders for story graphs used across the unit tests."""

from __future__ import annotations

from typing import Any

from storyloom.models.story import Choice, NodeMetadata, StoryNode


def make_node(node_id: str, *targets: str, tags: list[str] | None = None) -> StoryNode:
    """Build a node with one choice per target, ids ``<node>_<i>``."""
    return StoryNode(
        id=node_id,
        title=f"Node {node_id}",
        content=f"Content of {node_id}",
        choices=[
            Choice(id=f"{node_id}_{i}", text=f"Go to {target}", next_node_id=target)
            for i, target in enumerate(targets)
        ],
        metadata=NodeMetadata(tags=tags or []),
    )


def make_cyclic_story() -> list[StoryNode]:
    """start -> A -> B -> A (cycle), plus A -> end."""
    return [
        make_node("start", "A"),
        make_node("A", "B", "end"),
        make_node("B", "A"),
        make_node("end"),
    ]


def make_diamond_story() -> list[StoryNode]:
    """start -> {left, right} -> join -> tail -> end."""
    return [
        make_node("start", "left", "right"),
        make_node("left", "join"),
        make_node("right", "join"),
        make_node("join", "tail"),
        make_node("tail", "end"),
        make_node("end", "-1"),
    ]


def editor_node(
    node_id: str,
    node_type: str = "story",
    *,
    title: str | None = None,
    choices: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Editor node in the canvas' nested ``data`` shape."""
    return {
        "id": node_id,
        "type": "storyNode",
        "position": {"x": 0, "y": 0},
        "data": {
            "nodeType": node_type,
            "storyNode": {
                "id": node_id,
                "title": title if title is not None else f"Scene {node_id}",
                "content": f"<p>Text of {node_id}</p>",
                "choices": choices or [],
            },
        },
    }


def editor_edge(source: str, target: str, *, edge_id: str | None = None, **extra: Any) -> dict[str, Any]:
    edge: dict[str, Any] = {"source": source, "target": target}
    if edge_id is not None:
        edge["id"] = edge_id
    edge.update(extra)
    return edge
