"""Export format handlers (story-json, JSON, Twee)."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from storyloom.export.base import ExportResult, Exporter
from storyloom.export.json_exporter import JsonExporter
from storyloom.export.story_json_exporter import StoryJsonExporter
from storyloom.export.twee_exporter import TweeExporter
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from storyloom.graph.navigator import LoadedStory

log = get_logger(__name__)

_EXPORTERS: dict[str, type[StoryJsonExporter | JsonExporter | TweeExporter]] = {
    "story-json": StoryJsonExporter,
    "json": JsonExporter,
    "twee": TweeExporter,
}


def supported_formats() -> list[str]:
    return sorted(_EXPORTERS)


def get_exporter(format_name: str) -> StoryJsonExporter | JsonExporter | TweeExporter:
    """Get an exporter instance by format name.

    Args:
        format_name: Export format (e.g., "json", "twee", "story-json").

    Returns:
        Exporter instance.

    Raises:
        ValueError: If the format is not supported.
    """
    cls = _EXPORTERS.get(format_name)
    if cls is None:
        supported = ", ".join(supported_formats())
        msg = f"Unknown export format '{format_name}'. Supported: {supported}"
        raise ValueError(msg)
    return cls()


def export_story(
    story: LoadedStory,
    exporter: Exporter,
    *,
    include_metadata: bool = True,
    minify: bool = False,
    clock: Callable[[], datetime] | None = None,
) -> ExportResult:
    """Render a story with the given exporter.

    The file name is ``<stem>-<YYYY-MM-DDTHH-MM-SS><ext>``.
    """
    exported_at = (clock or (lambda: datetime.now(UTC)))()
    data = exporter.render(
        story, include_metadata=include_metadata, minify=minify, exported_at=exported_at
    )
    nodes = story.all_nodes()
    result = ExportResult(
        data=data,
        filename=f"{exporter.filename_stem}-{exported_at:%Y-%m-%dT%H-%M-%S}{exporter.extension}",
        total_nodes=len(nodes),
        total_choices=sum(len(node.choices) for node in nodes),
    )
    log.info(
        "story_exported",
        format=exporter.format_name,
        nodes=result.total_nodes,
        size=result.file_size,
    )
    return result


__all__ = [
    "ExportResult",
    "Exporter",
    "JsonExporter",
    "StoryJsonExporter",
    "TweeExporter",
    "export_story",
    "get_exporter",
    "supported_formats",
]
