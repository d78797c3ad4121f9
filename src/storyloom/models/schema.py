"""Schema checks for data entering from outside the process.

Every external boundary (story files, legacy payloads, save records,
bulk imports) goes through one of the ``check_*`` functions here. They
never raise on bad input: they return ``Valid(value)`` or
``Invalid(reasons)`` and leave the decision to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from storyloom.models.authoring import AuthoringProject
from storyloom.models.story import StoryNode

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

T = TypeVar("T")


@dataclass(frozen=True)
class Valid(Generic[T]):
    """Payload passed its schema check."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    """Payload failed its schema check.

    Attributes:
        reasons: One human-readable line per problem found.
    """

    reasons: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return False


CheckResult = Valid[T] | Invalid


def format_validation_errors(errors: list[ErrorDetails]) -> list[str]:
    """Flatten pydantic error details into ``path: message`` lines."""
    reasons: list[str] = []
    for error in errors:
        loc = ".".join(str(part) for part in error["loc"]) or "<root>"
        reasons.append(f"{loc}: {error['msg']}")
    return reasons


# ---------------------------------------------------------------------------
# Canonical story
# ---------------------------------------------------------------------------

_STORY_ADAPTER: TypeAdapter[list[StoryNode]] = TypeAdapter(list[StoryNode])


def check_story_nodes(payload: Any) -> CheckResult[list[StoryNode]]:
    """Validate a bare array of StoryNode dicts."""
    if not isinstance(payload, list):
        return Invalid([f"<root>: expected an array of story nodes, got {type(payload).__name__}"])
    try:
        return Valid(_STORY_ADAPTER.validate_python(payload))
    except ValidationError as e:
        return Invalid(format_validation_errors(e.errors()))


# ---------------------------------------------------------------------------
# Legacy format: [{id: int, text: str, options: [{text, nextText: int}]}]
# ---------------------------------------------------------------------------


class LegacyOption(BaseModel):
    """One option of a legacy node."""

    model_config = ConfigDict(populate_by_name=True)

    text: str
    next_text: int = Field(alias="nextText")


class LegacyStoryNode(BaseModel):
    """A node in the pre-graph flat story format."""

    id: int
    text: str
    options: list[LegacyOption] = Field(default_factory=list)


_LEGACY_ADAPTER: TypeAdapter[list[LegacyStoryNode]] = TypeAdapter(list[LegacyStoryNode])


def check_legacy_story(payload: Any) -> CheckResult[list[LegacyStoryNode]]:
    """Validate a legacy story array."""
    if not isinstance(payload, list):
        return Invalid([f"<root>: expected an array of legacy nodes, got {type(payload).__name__}"])
    try:
        return Valid(_LEGACY_ADAPTER.validate_python(payload))
    except ValidationError as e:
        return Invalid(format_validation_errors(e.errors()))


def looks_like_legacy_story(payload: Any) -> bool:
    """Cheap shape sniff: array whose first entry has ``options`` and no ``choices``."""
    if not isinstance(payload, list) or not payload:
        return False
    first = payload[0]
    return isinstance(first, dict) and "options" in first and "choices" not in first


# ---------------------------------------------------------------------------
# Save records
# ---------------------------------------------------------------------------


def check_save_record_shape(payload: Any) -> CheckResult[dict[str, Any]]:
    """Check the minimal shape an importable save record must have.

    Required: string ``id`` and ``name``; a ``gameState`` object whose
    ``currentNodeId`` is a string and ``visitedNodes`` is an array; and a
    ``timestamp`` key. Its value is not checked: imports restamp records.
    """
    if not isinstance(payload, dict):
        return Invalid([f"<root>: expected an object, got {type(payload).__name__}"])

    reasons: list[str] = []
    if not isinstance(payload.get("id"), str):
        reasons.append("id: must be a string")
    if not isinstance(payload.get("name"), str):
        reasons.append("name: must be a string")
    if "timestamp" not in payload:
        reasons.append("timestamp: required")

    game_state = payload.get("gameState")
    if not isinstance(game_state, dict):
        reasons.append("gameState: must be an object")
    else:
        if not isinstance(game_state.get("currentNodeId"), str):
            reasons.append("gameState.currentNodeId: must be a string")
        if not isinstance(game_state.get("visitedNodes"), list):
            reasons.append("gameState.visitedNodes: must be an array")

    if reasons:
        return Invalid(reasons)
    return Valid(payload)


# ---------------------------------------------------------------------------
# Authoring projects: {nodes: [...], edges: [...]}
# ---------------------------------------------------------------------------


def looks_like_authoring_project(payload: Any) -> bool:
    """True for a mapping carrying editor ``nodes`` and ``edges`` lists."""
    return (
        isinstance(payload, dict)
        and isinstance(payload.get("nodes"), list)
        and isinstance(payload.get("edges"), list)
    )


def check_authoring_project(payload: Any) -> CheckResult[AuthoringProject]:
    """Validate an editor document."""
    if not isinstance(payload, dict):
        return Invalid([f"<root>: expected an object, got {type(payload).__name__}"])
    try:
        return Valid(AuthoringProject.model_validate(payload))
    except ValidationError as e:
        return Invalid(format_validation_errors(e.errors()))
