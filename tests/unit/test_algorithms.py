"""Tests for graph traversal algorithms."""

from __future__ import annotations

from storyloom.graph.algorithms import (
    compute_max_depth,
    duplicate_ids,
    find_start_candidates,
    incoming_counts,
    index_nodes,
    outgoing_targets,
    reachable_from,
)
from tests.fixtures.story_fixtures import make_cyclic_story, make_diamond_story, make_node


class TestIndexing:
    def test_first_duplicate_wins(self) -> None:
        first = make_node("a", "x")
        second = make_node("a", "y")
        index = index_nodes([first, second])
        assert index["a"] is first

    def test_duplicate_ids_in_first_seen_order(self) -> None:
        nodes = [make_node("b"), make_node("a"), make_node("b"), make_node("a")]
        assert duplicate_ids(nodes) == ["b", "a"]


class TestReferences:
    def test_outgoing_targets_skip_restart(self) -> None:
        assert outgoing_targets(make_node("a", "b", "-1", "c")) == ["b", "c"]

    def test_incoming_counts(self) -> None:
        counts = incoming_counts([make_node("a", "b", "b"), make_node("b", "a", "-1")])
        assert counts["b"] == 2
        assert counts["a"] == 1
        assert counts["-1"] == 0

    def test_start_candidates_in_input_order(self) -> None:
        nodes = [make_node("z", "m"), make_node("a", "m"), make_node("m")]
        assert find_start_candidates(nodes) == ["z", "a"]


class TestReachability:
    def test_cycle_terminates(self) -> None:
        index = index_nodes(make_cyclic_story())
        assert reachable_from(index, "start") == {"start", "A", "B", "end"}

    def test_dangling_targets_ignored(self) -> None:
        index = index_nodes([make_node("a", "ghost")])
        assert reachable_from(index, "a") == {"a"}

    def test_unknown_start(self) -> None:
        assert reachable_from({}, "nowhere") == set()


class TestMaxDepth:
    """Longest simple path, measured with a path-local visited set."""

    def test_linear(self) -> None:
        index = index_nodes([make_node("a", "b"), make_node("b", "c"), make_node("c")])
        assert compute_max_depth(index, "a") == 2

    def test_cycle_is_finite(self) -> None:
        """start -> A -> B -> A plus A -> end: the cycle is cut at A."""
        index = index_nodes(make_cyclic_story())
        assert compute_max_depth(index, "start") == 2

    def test_diamond_measures_both_branches(self) -> None:
        """join is reached via left first; right must still see the full tail."""
        index = index_nodes(make_diamond_story())
        assert compute_max_depth(index, "start") == 4

    def test_longer_route_through_revisited_node(self) -> None:
        """A shared node reached by a short then a long route counts the long one."""
        nodes = [
            make_node("s", "x", "a"),
            make_node("a", "b"),
            make_node("b", "x"),
            make_node("x", "y"),
            make_node("y"),
        ]
        assert compute_max_depth(index_nodes(nodes), "s") == 4

    def test_restart_only_node_ends_path(self) -> None:
        index = index_nodes([make_node("a", "b"), make_node("b", "-1")])
        assert compute_max_depth(index, "a") == 1

    def test_lone_node(self) -> None:
        assert compute_max_depth(index_nodes([make_node("a")]), "a") == 0

    def test_unknown_start(self) -> None:
        assert compute_max_depth({}, "a") == 0

    def test_deep_chain_does_not_recurse(self) -> None:
        """Thousands of nodes in a row stay well below any recursion limit."""
        count = 5000
        nodes = [make_node(str(i), str(i + 1)) for i in range(count)]
        nodes.append(make_node(str(count)))
        assert compute_max_depth(index_nodes(nodes), "0") == count
