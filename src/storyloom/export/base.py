"""Export result type and Exporter protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from storyloom.graph.navigator import LoadedStory

DEFAULT_STORY_TITLE = "Interactive Story"


@dataclass(frozen=True)
class ExportResult:
    """Rendered export, not yet written anywhere.

    Attributes:
        data: File contents.
        filename: Suggested file name, timestamped.
        total_nodes: Nodes exported.
        total_choices: Choices exported, restart choices included.
    """

    data: str
    filename: str
    total_nodes: int
    total_choices: int

    @property
    def file_size(self) -> int:
        """Size of ``data`` in bytes, UTF-8 encoded."""
        return len(self.data.encode("utf-8"))

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "totalChoices": self.total_choices,
            "fileSize": self.file_size,
        }

    def write(self, output_dir: Path) -> Path:
        """Write data to ``output_dir/filename`` and return the path."""
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / self.filename
        output_file.write_text(self.data, encoding="utf-8")
        return output_file


class Exporter(Protocol):
    """Protocol for story export format handlers."""

    format_name: str
    filename_stem: str
    extension: str

    def render(
        self,
        story: LoadedStory,
        *,
        include_metadata: bool,
        minify: bool,
        exported_at: datetime,
    ) -> str:
        """Render the story in this format.

        Args:
            story: Loaded story to export.
            include_metadata: Add a metadata header or block.
            minify: Drop insignificant whitespace where the format allows.
            exported_at: Timestamp recorded in metadata.

        Returns:
            File contents.
        """
        ...


def story_title(story: LoadedStory) -> str:
    """Title from story metadata, or a generic one."""
    title = story.metadata.get("title")
    return title if isinstance(title, str) and title.strip() else DEFAULT_STORY_TITLE
