"""Authoring graph models, as produced by the visual node editor.

The editor keeps nodes and connections in two separate lists. Each node
wraps the StoryNode being edited plus a ``nodeType`` tag; each connection
links a source node to a target node and may carry a label. Both the flat
shape (``{id, nodeType, storyNode}``) and the editor's nested shape
(``{id, data: {nodeType, storyNode}}``) are accepted.

These are immutable snapshots: the converter never edits them in place.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from storyloom.models.story import Condition, Effect, StoryNode, WireModel

NodeType = Literal["start", "story", "choice", "end"]

_FROZEN = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _flatten_editor_data(data: Any, keys: tuple[str, ...]) -> Any:
    """Lift selected keys out of an editor ``data`` envelope."""
    if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
        return data
    inner = data["data"]
    flat = {k: v for k, v in data.items() if k != "data"}
    for key in keys:
        if key in inner:
            flat.setdefault(key, inner[key])
    return flat


class AuthoringNode(WireModel):
    """A node on the editor canvas."""

    model_config = _FROZEN

    id: str
    node_type: NodeType = "story"
    story_node: StoryNode

    @model_validator(mode="before")
    @classmethod
    def _unwrap(cls, data: Any) -> Any:
        return _flatten_editor_data(data, ("nodeType", "storyNode"))


class EdgeChoice(WireModel):
    """Choice details an editor may attach to a connection."""

    model_config = _FROZEN

    text: str | None = None
    conditions: list[Condition] = Field(default_factory=list)
    consequences: list[Effect] = Field(default_factory=list)


class AuthoringEdge(WireModel):
    """A connection between two editor nodes."""

    model_config = _FROZEN

    id: str | None = None
    source: str
    target: str
    label: str | None = None
    choice: EdgeChoice | None = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap(cls, data: Any) -> Any:
        return _flatten_editor_data(data, ("choice",))

    @field_validator("label", mode="before")
    @classmethod
    def _label_as_text(cls, value: Any) -> Any:
        # Canvas libraries allow numeric labels
        if value is None or isinstance(value, str):
            return value
        return str(value)


class AuthoringProject(WireModel):
    """A whole editor document: nodes plus connections."""

    model_config = _FROZEN

    nodes: list[AuthoringNode] = Field(default_factory=list)
    edges: list[AuthoringEdge] = Field(default_factory=list)
