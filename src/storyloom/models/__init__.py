"""Story data models and external-boundary schema checks."""

from __future__ import annotations

from storyloom.models.authoring import (
    AuthoringEdge,
    AuthoringNode,
    AuthoringProject,
    EdgeChoice,
    NodeType,
)
from storyloom.models.schema import (
    CheckResult,
    Invalid,
    LegacyOption,
    LegacyStoryNode,
    Valid,
    check_authoring_project,
    check_legacy_story,
    check_save_record_shape,
    check_story_nodes,
    looks_like_authoring_project,
    looks_like_legacy_story,
)
from storyloom.models.story import (
    RESTART_NODE_ID,
    Choice,
    Condition,
    Effect,
    MediaContent,
    NodeMetadata,
    StoryNode,
    nodes_to_dicts,
)

__all__ = [
    "RESTART_NODE_ID",
    "AuthoringEdge",
    "AuthoringNode",
    "AuthoringProject",
    "CheckResult",
    "Choice",
    "Condition",
    "EdgeChoice",
    "Effect",
    "Invalid",
    "LegacyOption",
    "LegacyStoryNode",
    "MediaContent",
    "NodeMetadata",
    "NodeType",
    "StoryNode",
    "Valid",
    "check_authoring_project",
    "check_legacy_story",
    "check_save_record_shape",
    "check_story_nodes",
    "looks_like_authoring_project",
    "looks_like_legacy_story",
    "nodes_to_dicts",
]
