"""Generic JSON export format.

Canonical nodes plus the start node id, for external tools and custom
engines. ``StoryNavigator.load_payload`` reads this format back.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from storyloom.export.base import story_title
from storyloom.models.story import nodes_to_dicts

if TYPE_CHECKING:
    from datetime import datetime

    from storyloom.graph.navigator import LoadedStory

FORMAT_NAME = "generic-interactive-story"
FORMAT_VERSION = "1.0"


class JsonExporter:
    """Export story as structured JSON."""

    format_name = "json"
    filename_stem = "interactive-story"
    extension = ".json"

    def render(
        self,
        story: LoadedStory,
        *,
        include_metadata: bool,
        minify: bool,
        exported_at: datetime,
    ) -> str:
        nodes = story.all_nodes()
        data: dict[str, Any] = {"format": FORMAT_NAME, "version": FORMAT_VERSION}
        if include_metadata:
            data["metadata"] = {
                "title": story_title(story),
                "author": "StoryLoom",
                "createdAt": exported_at.isoformat(),
                "totalNodes": len(nodes),
                "startNodeId": story.start_node_id,
            }
        data["story"] = {"startNodeId": story.start_node_id, "nodes": nodes_to_dicts(nodes)}

        if minify:
            return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
        return json.dumps(data, indent=2, ensure_ascii=False)
