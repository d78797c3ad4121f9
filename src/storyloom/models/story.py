"""Canonical story graph models.

A story is an ordered list of StoryNode. Each node owns its outgoing
Choice list; a choice targets another node id, or the restart sentinel
``"-1"`` which sends the player back to the start node.

Graph-level invariants (single start node, no dangling references) are
checked by ``storyloom.graph.validation`` rather than at construction, so
that half-authored graphs can still be held in memory.

On the wire all models use camelCase keys (``nextNodeId``, ``visitCount``);
snake_case field names are accepted on input as well.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

RESTART_NODE_ID = "-1"
"""Sentinel ``next_node_id`` meaning "restart from the start node"."""

Difficulty = Literal["easy", "medium", "hard"]
RuleValue = str | int | float | bool


class WireModel(BaseModel):
    """Base for models serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Dump as a JSON-compatible dict using wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Condition(WireModel):
    """Gate on a choice. Carried through untouched; never evaluated here."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: str | None = None
    target: str | None = None
    operator: str | None = None
    value: RuleValue | None = None


class Effect(WireModel):
    """Consequence of taking a choice. Carried through untouched."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: str | None = None
    target: str | None = None
    value: RuleValue | None = None
    description: str | None = None


class Choice(WireModel):
    """An outgoing transition shown to the player."""

    id: str
    text: str = ""
    next_node_id: str
    conditions: list[Condition] = Field(default_factory=list)
    consequences: list[Effect] = Field(default_factory=list)

    @field_validator("next_node_id", mode="before")
    @classmethod
    def _stringify_target(cls, value: Any) -> Any:
        # Hand-written files often use bare integers for targets
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def is_restart(self) -> bool:
        """True if this choice restarts the story instead of moving on."""
        return self.next_node_id == RESTART_NODE_ID


class MediaContent(WireModel):
    """Optional presentation assets attached to a node."""

    background_image: str | None = None
    background_music: str | None = None
    sound_effects: list[str] = Field(default_factory=list)
    video: str | None = None


class NodeMetadata(WireModel):
    """Authoring metadata. Never modified by the runtime."""

    tags: list[str] = Field(default_factory=list)
    visit_count: int = Field(default=0, ge=0)
    last_visited: datetime | None = None
    difficulty: Difficulty = "medium"

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: list[str]) -> list[str]:
        """Tags have set semantics; keep first occurrence order."""
        return list(dict.fromkeys(tags))


class StoryNode(WireModel):
    """A scene in the story."""

    id: str
    title: str = ""
    content: str = ""
    choices: list[Choice] = Field(default_factory=list)
    multimedia: MediaContent = Field(default_factory=MediaContent)
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def is_terminal(self) -> bool:
        """True for endings: no choices, or a lone restart choice."""
        if not self.choices:
            return True
        return len(self.choices) == 1 and self.choices[0].is_restart

    def choice_by_id(self, choice_id: str) -> Choice | None:
        """Return the choice with the given id, or None."""
        return next((c for c in self.choices if c.id == choice_id), None)


def nodes_to_dicts(nodes: list[StoryNode]) -> list[dict[str, Any]]:
    """Serialise a node list to the canonical JSON array."""
    return [node.to_dict() for node in nodes]
