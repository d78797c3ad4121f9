"""Legacy-compatible JSON export.

Writes the flat numeric format older players read: ``[{id, text,
options: [{text, nextText}]}]``. Non-numeric ids are replaced by their
position and non-numeric targets (restart included) by ``-1``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from storyloom.export.base import story_title
from storyloom.graph.migration import to_legacy_format

if TYPE_CHECKING:
    from datetime import datetime

    from storyloom.graph.navigator import LoadedStory

FORMAT_VERSION = "1.0.0"


class StoryJsonExporter:
    """Export story in the legacy numeric JSON format."""

    format_name = "story-json"
    filename_stem = "story"
    extension = ".json"

    def render(
        self,
        story: LoadedStory,
        *,
        include_metadata: bool,
        minify: bool,
        exported_at: datetime,
    ) -> str:
        legacy = to_legacy_format(story.all_nodes())
        data: Any = legacy
        if include_metadata:
            data = {
                "metadata": {
                    "title": story_title(story),
                    "description": "Exported from StoryLoom",
                    "version": FORMAT_VERSION,
                    "exportedAt": exported_at.isoformat(),
                    "totalNodes": len(legacy),
                    "totalChoices": sum(len(node["options"]) for node in legacy),
                },
                "story": legacy,
            }
        if minify:
            return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
        return json.dumps(data, indent=2, ensure_ascii=False)
