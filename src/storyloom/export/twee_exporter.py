"""Twee export format.

Generates Twee passages that Twine can import. Passage names are node
titles (ids for untitled nodes); content has its HTML tags stripped.
Restart choices link to the ``Start`` passage, which is the metadata
header when metadata is included and the start node otherwise.

Format reference: https://twinery.org/cookbook/terms/terms_twee.html
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from storyloom.export.base import story_title
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from datetime import datetime

    from storyloom.graph.navigator import LoadedStory
    from storyloom.models.story import StoryNode

log = get_logger(__name__)

START_PASSAGE = "Start"

_BREAK_RE = re.compile(r"<br\s*/?>|</?p>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(content: str) -> str:
    """Turn line-level tags into newlines and drop all other tags."""
    return _TAG_RE.sub("", _BREAK_RE.sub("\n", content)).strip()


class TweeExporter:
    """Export story as Twee passages."""

    format_name = "twee"
    filename_stem = "story"
    extension = ".twee"

    def render(
        self,
        story: LoadedStory,
        *,
        include_metadata: bool,
        minify: bool,
        exported_at: datetime,
    ) -> str:
        nodes = story.all_nodes()
        names = {node.id: _passage_name(node) for node in nodes}
        start_name = names[story.start_node_id]

        lines: list[str] = []
        if include_metadata:
            lines.extend(
                [
                    f":: {START_PASSAGE}",
                    story_title(story),
                    f"Created with StoryLoom on {exported_at.date().isoformat()}",
                    "",
                    f"[[Begin the story|{start_name}]]",
                    "",
                ]
            )
        else:
            # Without a header the start node itself is the Start passage
            names[story.start_node_id] = START_PASSAGE

        for node in nodes:
            lines.extend(_render_passage(node, names))
            lines.append("")

        log.debug("twee_rendered", passages=len(nodes), with_header=include_metadata)
        return "\n".join(lines)


def _passage_name(node: StoryNode) -> str:
    return node.title.strip() or node.id


def _render_passage(node: StoryNode, names: dict[str, str]) -> list[str]:
    tags = f" [{' '.join(node.metadata.tags)}]" if node.metadata.tags else ""
    lines = [f":: {names[node.id]}{tags}", strip_html(node.content), ""]
    for choice in node.choices:
        if choice.is_restart:
            target = START_PASSAGE
        else:
            target = names.get(choice.next_node_id, choice.next_node_id)
        lines.append(f"[[{choice.text}|{target}]]")
    return lines
