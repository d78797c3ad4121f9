"""Aggregate statistics over a canonical story graph."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from storyloom.graph.algorithms import compute_max_depth, index_nodes

if TYPE_CHECKING:
    from collections.abc import Sequence

    from storyloom.models.story import StoryNode


@dataclass(frozen=True)
class StoryStats:
    """Size and shape of a story.

    Attributes:
        total_nodes: Number of distinct node ids.
        total_choices: Sum of choice counts, restart choices included.
        average_choices_per_node: ``total_choices / total_nodes`` rounded to
            two decimals; 0 for an empty story.
        max_depth: Longest simple path from the start node, in choices.
        end_nodes: Nodes with no choices or only a restart choice.
    """

    total_nodes: int
    total_choices: int
    average_choices_per_node: float
    max_depth: int
    end_nodes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "totalChoices": self.total_choices,
            "averageChoicesPerNode": self.average_choices_per_node,
            "maxDepth": self.max_depth,
            "endNodes": self.end_nodes,
        }


def compute_story_stats(nodes: Sequence[StoryNode], start_node_id: str | None) -> StoryStats:
    """Compute StoryStats for a node list.

    Duplicated ids count once (first occurrence wins). ``max_depth`` is 0
    when the start node is unknown.
    """
    index = index_nodes(nodes)
    total_nodes = len(index)
    total_choices = sum(len(node.choices) for node in index.values())
    average = round(total_choices / total_nodes, 2) if total_nodes else 0.0
    max_depth = compute_max_depth(index, start_node_id) if start_node_id else 0
    end_nodes = sum(1 for node in index.values() if node.is_terminal)
    return StoryStats(
        total_nodes=total_nodes,
        total_choices=total_choices,
        average_choices_per_node=average,
        max_depth=max_depth,
        end_nodes=end_nodes,
    )
