"""Tests for story models and boundary schema checks."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from storyloom.models import (
    AuthoringEdge,
    AuthoringNode,
    Choice,
    Invalid,
    NodeMetadata,
    StoryNode,
    Valid,
    check_authoring_project,
    check_legacy_story,
    check_save_record_shape,
    check_story_nodes,
    looks_like_authoring_project,
    looks_like_legacy_story,
)


class TestStoryNode:
    """Tests for StoryNode and Choice."""

    def test_accepts_camel_case_wire_keys(self) -> None:
        """nextNodeId and visitCount map onto snake_case fields."""
        node = StoryNode.model_validate(
            {
                "id": "1",
                "title": "Gate",
                "content": "A gate.",
                "choices": [{"id": "c1", "text": "Open", "nextNodeId": "2"}],
                "metadata": {"tags": ["start"], "visitCount": 3, "difficulty": "hard"},
            }
        )
        assert node.choices[0].next_node_id == "2"
        assert node.metadata.visit_count == 3
        assert node.metadata.difficulty == "hard"

    def test_to_dict_uses_camel_case(self) -> None:
        """Serialised nodes use wire keys."""
        node = StoryNode(id="1", choices=[Choice(id="c", text="t", next_node_id="2")])
        data = node.to_dict()
        assert data["choices"][0]["nextNodeId"] == "2"
        assert "visitCount" in data["metadata"]

    def test_integer_ids_are_stringified(self) -> None:
        """Hand-written files may use numbers for ids and targets."""
        node = StoryNode.model_validate(
            {"id": 7, "choices": [{"id": "c", "text": "t", "nextNodeId": 8}]}
        )
        assert node.id == "7"
        assert node.choices[0].next_node_id == "8"

    def test_tags_have_set_semantics(self) -> None:
        """Duplicate tags collapse, first occurrence order kept."""
        meta = NodeMetadata(tags=["b", "a", "b"])
        assert meta.tags == ["b", "a"]

    def test_negative_visit_count_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NodeMetadata(visit_count=-1)

    def test_unknown_difficulty_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NodeMetadata.model_validate({"difficulty": "extreme"})

    def test_terminal_nodes(self) -> None:
        """No choices, or only a restart choice, is an ending."""
        assert StoryNode(id="a").is_terminal
        restart_only = StoryNode(id="b", choices=[Choice(id="r", next_node_id="-1")])
        assert restart_only.is_terminal
        assert restart_only.choices[0].is_restart
        moving_on = StoryNode(id="c", choices=[Choice(id="x", next_node_id="d")])
        assert not moving_on.is_terminal

    def test_choice_by_id(self) -> None:
        node = StoryNode(id="a", choices=[Choice(id="x", next_node_id="b")])
        assert node.choice_by_id("x") is not None
        assert node.choice_by_id("y") is None

    def test_conditions_pass_through_unknown_keys(self) -> None:
        """Rules are carried, not interpreted; extra keys survive."""
        choice = Choice.model_validate(
            {
                "id": "c",
                "nextNodeId": "2",
                "conditions": [{"type": "variable", "target": "key", "custom": 1}],
            }
        )
        assert choice.to_dict()["conditions"][0]["custom"] == 1


class TestAuthoringModels:
    """Tests for editor node/edge parsing."""

    def test_nested_editor_shape(self) -> None:
        """data.nodeType and data.storyNode are lifted."""
        node = AuthoringNode.model_validate(
            {"id": "n1", "data": {"nodeType": "start", "storyNode": {"id": "n1"}}}
        )
        assert node.node_type == "start"
        assert node.story_node.id == "n1"

    def test_flat_shape(self) -> None:
        node = AuthoringNode.model_validate(
            {"id": "n1", "nodeType": "end", "storyNode": {"id": "n1"}}
        )
        assert node.node_type == "end"

    def test_edge_numeric_label_becomes_text(self) -> None:
        edge = AuthoringEdge.model_validate({"source": "a", "target": "b", "label": 3})
        assert edge.label == "3"

    def test_edge_choice_from_data(self) -> None:
        edge = AuthoringEdge.model_validate(
            {"source": "a", "target": "b", "data": {"choice": {"text": "Run"}}}
        )
        assert edge.choice is not None
        assert edge.choice.text == "Run"

    def test_authoring_models_are_frozen(self) -> None:
        edge = AuthoringEdge(source="a", target="b")
        with pytest.raises(ValidationError):
            edge.target = "c"  # type: ignore[misc]


class TestSchemaChecks:
    """Tests for Valid/Invalid boundary checks."""

    def test_story_nodes_valid(self) -> None:
        result = check_story_nodes([{"id": "1"}])
        assert isinstance(result, Valid)
        assert result.ok
        assert result.value[0].id == "1"

    def test_story_nodes_not_a_list(self) -> None:
        result = check_story_nodes({"id": "1"})
        assert isinstance(result, Invalid)
        assert not result.ok
        assert "expected an array" in result.reasons[0]

    def test_story_nodes_reports_path(self) -> None:
        """Reasons name the offending location."""
        result = check_story_nodes([{"id": "1", "choices": [{"id": "c"}]}])
        assert isinstance(result, Invalid)
        assert any(reason.startswith("0.choices.0.") for reason in result.reasons)

    def test_legacy_story_valid(self) -> None:
        result = check_legacy_story([{"id": 1, "text": "A", "options": []}])
        assert isinstance(result, Valid)

    def test_legacy_story_missing_text(self) -> None:
        result = check_legacy_story([{"id": 1, "options": []}])
        assert isinstance(result, Invalid)

    def test_looks_like_legacy(self) -> None:
        assert looks_like_legacy_story([{"id": 1, "text": "A", "options": []}])
        assert not looks_like_legacy_story([{"id": "1", "choices": []}])
        assert not looks_like_legacy_story([])

    def test_looks_like_authoring_project(self) -> None:
        assert looks_like_authoring_project({"nodes": [], "edges": []})
        assert not looks_like_authoring_project({"nodes": []})
        assert not looks_like_authoring_project([])

    def test_authoring_project_invalid(self) -> None:
        result = check_authoring_project({"nodes": [{"id": "x"}], "edges": []})
        assert isinstance(result, Invalid)

    def test_save_record_shape_valid(self) -> None:
        record = {
            "id": "s1",
            "name": "Save",
            "timestamp": "2024-01-01T00:00:00+00:00",
            "gameState": {"currentNodeId": "1", "visitedNodes": ["1"]},
        }
        assert isinstance(check_save_record_shape(record), Valid)

    def test_save_record_shape_collects_every_problem(self) -> None:
        record = {"id": 1, "gameState": {"currentNodeId": 2, "visitedNodes": "1"}}
        result = check_save_record_shape(record)
        assert isinstance(result, Invalid)
        assert len(result.reasons) == 5
