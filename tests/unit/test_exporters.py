"""Tests for story exporters."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from storyloom.export import (
    JsonExporter,
    StoryJsonExporter,
    TweeExporter,
    export_story,
    get_exporter,
    supported_formats,
)
from storyloom.export.twee_exporter import strip_html
from storyloom.graph.navigator import LoadedStory, StoryNavigator
from storyloom.models.story import Choice, StoryNode
from tests.fixtures.story_fixtures import make_node

if TYPE_CHECKING:
    from pathlib import Path

EXPORTED_AT = datetime(2024, 3, 9, 14, 5, 7, tzinfo=UTC)


def _fixed_clock() -> datetime:
    return EXPORTED_AT


@pytest.fixture
def numeric_story() -> LoadedStory:
    return StoryNavigator().load(
        [make_node("1", "2", "3"), make_node("2", "3"), make_node("3", "-1")],
        metadata={"title": "The Cave"},
    )


@pytest.fixture
def html_story() -> LoadedStory:
    nodes = [
        StoryNode(
            id="intro",
            title="Intro",
            content="<p>It is <b>dark</b>.</p><p>A door.<br/>A lamp.</p>",
            choices=[Choice(id="c1", text="Open the door", next_node_id="hall")],
            metadata={"tags": ["opening", "indoor"]},
        ),
        StoryNode(
            id="hall",
            title="",
            content="The end.",
            choices=[Choice(id="r", text="Play again", next_node_id="-1")],
        ),
    ]
    return StoryNavigator().load(nodes)


class TestRegistry:
    def test_supported_formats(self) -> None:
        assert supported_formats() == ["json", "story-json", "twee"]

    @pytest.mark.parametrize(
        ("name", "cls"),
        [("json", JsonExporter), ("story-json", StoryJsonExporter), ("twee", TweeExporter)],
    )
    def test_get_exporter(self, name: str, cls: type) -> None:
        assert isinstance(get_exporter(name), cls)

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="Unknown export format 'pdf'"):
            get_exporter("pdf")


class TestExportStory:
    def test_filename_and_counts(self, numeric_story: LoadedStory) -> None:
        result = export_story(numeric_story, JsonExporter(), clock=_fixed_clock)
        assert result.filename == "interactive-story-2024-03-09T14-05-07.json"
        assert result.total_nodes == 3
        assert result.total_choices == 4
        assert result.stats == {
            "totalNodes": 3,
            "totalChoices": 4,
            "fileSize": result.file_size,
        }

    def test_file_size_counts_bytes(self) -> None:
        story = StoryNavigator().load([StoryNode(id="a", content="ü")])
        result = export_story(story, StoryJsonExporter(), include_metadata=False, minify=True)
        assert result.data == '[{"id":1,"text":"ü","options":[]}]'
        assert result.file_size == len(result.data) + 1

    def test_write(self, numeric_story: LoadedStory, tmp_path: Path) -> None:
        result = export_story(numeric_story, TweeExporter(), clock=_fixed_clock)
        path = result.write(tmp_path / "out")
        assert path == tmp_path / "out" / "story-2024-03-09T14-05-07.twee"
        assert path.read_text(encoding="utf-8") == result.data


class TestStoryJsonExporter:
    def test_with_metadata(self, numeric_story: LoadedStory) -> None:
        result = export_story(numeric_story, StoryJsonExporter(), clock=_fixed_clock)
        data = json.loads(result.data)
        assert data["metadata"] == {
            "title": "The Cave",
            "description": "Exported from StoryLoom",
            "version": "1.0.0",
            "exportedAt": "2024-03-09T14:05:07+00:00",
            "totalNodes": 3,
            "totalChoices": 4,
        }
        assert data["story"][0] == {
            "id": 1,
            "text": "Content of 1",
            "options": [
                {"text": "Go to 2", "nextText": 2},
                {"text": "Go to 3", "nextText": 3},
            ],
        }
        assert data["story"][2]["options"] == [{"text": "Go to -1", "nextText": -1}]

    def test_without_metadata_is_bare_array(self, numeric_story: LoadedStory) -> None:
        result = export_story(numeric_story, StoryJsonExporter(), include_metadata=False)
        assert isinstance(json.loads(result.data), list)

    def test_minify(self, numeric_story: LoadedStory) -> None:
        pretty = export_story(numeric_story, StoryJsonExporter(), clock=_fixed_clock)
        compact = export_story(numeric_story, StoryJsonExporter(), minify=True, clock=_fixed_clock)
        assert "\n" not in compact.data
        assert json.loads(compact.data) == json.loads(pretty.data)
        assert compact.file_size < pretty.file_size

    def test_untitled_story(self, html_story: LoadedStory) -> None:
        data = json.loads(export_story(html_story, StoryJsonExporter()).data)
        assert data["metadata"]["title"] == "Interactive Story"
        assert [node["id"] for node in data["story"]] == [1, 2]


class TestJsonExporter:
    def test_shape(self, numeric_story: LoadedStory) -> None:
        data = json.loads(export_story(numeric_story, JsonExporter(), clock=_fixed_clock).data)
        assert data["format"] == "generic-interactive-story"
        assert data["version"] == "1.0"
        assert data["metadata"] == {
            "title": "The Cave",
            "author": "StoryLoom",
            "createdAt": "2024-03-09T14:05:07+00:00",
            "totalNodes": 3,
            "startNodeId": "1",
        }
        assert data["story"]["startNodeId"] == "1"
        assert data["story"]["nodes"][0]["choices"][0]["nextNodeId"] == "2"

    def test_without_metadata(self, numeric_story: LoadedStory) -> None:
        data = json.loads(
            export_story(numeric_story, JsonExporter(), include_metadata=False).data
        )
        assert "metadata" not in data

    def test_loads_back(self, html_story: LoadedStory) -> None:
        """The navigator reads generic exports back with the same start."""
        data = json.loads(export_story(html_story, JsonExporter()).data)
        reloaded = StoryNavigator().load_payload(data)
        assert reloaded.start_node_id == "intro"
        assert reloaded.all_nodes() == html_story.all_nodes()
        assert reloaded.metadata["author"] == "StoryLoom"


class TestTweeExporter:
    def test_strip_html(self) -> None:
        assert strip_html("<p>One</p><p>Two<br>Three</p>") == "One\n\nTwo\nThree"
        assert strip_html("<em>plain</em> text") == "plain text"

    def test_with_header(self, html_story: LoadedStory) -> None:
        data = export_story(html_story, TweeExporter(), clock=_fixed_clock).data
        lines = data.splitlines()
        assert lines[:5] == [
            ":: Start",
            "Interactive Story",
            "Created with StoryLoom on 2024-03-09",
            "",
            "[[Begin the story|Intro]]",
        ]
        assert ":: Intro [opening indoor]" in lines
        assert "[[Open the door|hall]]" in lines
        assert "[[Play again|Start]]" in lines
        assert "<" not in data

    def test_passage_content(self, html_story: LoadedStory) -> None:
        data = export_story(html_story, TweeExporter(), include_metadata=False).data
        assert "It is dark.\n\nA door.\nA lamp." in data

    def test_without_header_start_node_is_start(self, html_story: LoadedStory) -> None:
        data = export_story(html_story, TweeExporter(), include_metadata=False).data
        lines = data.splitlines()
        assert lines[0] == ":: Start [opening indoor]"
        assert ":: hall" in lines
        assert "[[Play again|Start]]" in lines
        assert "Created with StoryLoom" not in data

    def test_links_use_titles(self, numeric_story: LoadedStory) -> None:
        data = export_story(numeric_story, TweeExporter()).data
        assert "[[Go to 2|Node 2]]" in data
        assert "[[Begin the story|Node 1]]" in data
