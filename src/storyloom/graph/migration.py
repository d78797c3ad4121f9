"""Migration between the legacy flat story format and canonical nodes.

Legacy stories are arrays of ``{id: int, text: str, options: [{text,
nextText: int}]}``. Node 1 is the entry point and ``nextText == -1``
means restart.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from storyloom.graph.errors import MigrationError
from storyloom.models.schema import Invalid, check_legacy_story
from storyloom.models.story import RESTART_NODE_ID, Choice, NodeMetadata, StoryNode
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

log = get_logger(__name__)

LEGACY_START_ID = 1
START_TAG = "start"


def migrate_legacy_story(payload: Any) -> list[StoryNode]:
    """Translate a legacy story array into canonical StoryNode objects.

    Input order is not trusted: nodes are sorted by numeric id before the
    start tag is assigned.

    Args:
        payload: Parsed JSON of a legacy story.

    Returns:
        Canonical nodes, ordered by numeric id.

    Raises:
        MigrationError: If the payload does not match the legacy schema.
    """
    checked = check_legacy_story(payload)
    if isinstance(checked, Invalid):
        raise MigrationError(checked.reasons)

    nodes: list[StoryNode] = []
    for old in sorted(checked.value, key=lambda n: n.id):
        choices = [
            Choice(
                id=f"choice_{old.id}_{index}",
                text=option.text,
                next_node_id=RESTART_NODE_ID if option.next_text == -1 else str(option.next_text),
            )
            for index, option in enumerate(old.options)
        ]
        is_start = old.id == LEGACY_START_ID
        nodes.append(
            StoryNode(
                id=str(old.id),
                title="Beginning of the Story" if is_start else f"Scene {old.id}",
                content=old.text,
                choices=choices,
                metadata=NodeMetadata(tags=[START_TAG] if is_start else [], difficulty="medium"),
            )
        )

    log.info("legacy_story_migrated", nodes=len(nodes))
    return nodes


def to_legacy_format(nodes: Sequence[StoryNode]) -> list[dict[str, Any]]:
    """Render canonical nodes in the legacy numeric format.

    Non-numeric node ids are replaced by their 1-based position; choice
    targets that are not numeric (including the restart sentinel) become
    ``-1``.
    """
    legacy: list[dict[str, Any]] = []
    for position, node in enumerate(nodes, start=1):
        legacy.append(
            {
                "id": _int_or(node.id, position),
                "text": node.content,
                "options": [
                    {"text": choice.text, "nextText": _int_or(choice.next_node_id, -1)}
                    for choice in node.choices
                ],
            }
        )
    return legacy


def _int_or(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        return default
