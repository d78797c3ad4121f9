"""Story graph validation, conversion, migration and navigation."""

from __future__ import annotations

from storyloom.graph.converter import (
    ConversionResult,
    convert_authoring_graph,
    convert_or_raise,
    load_authoring_project,
)
from storyloom.graph.errors import ConversionError, LoadError, MigrationError, StoryGraphError
from storyloom.graph.migration import migrate_legacy_story, to_legacy_format
from storyloom.graph.navigator import LoadedStory, StoryNavigator
from storyloom.graph.stats import StoryStats, compute_story_stats
from storyloom.graph.validation import ValidationResult, validate_story_graph

__all__ = [
    "ConversionError",
    "ConversionResult",
    "LoadError",
    "LoadedStory",
    "MigrationError",
    "StoryGraphError",
    "StoryNavigator",
    "StoryStats",
    "ValidationResult",
    "compute_story_stats",
    "convert_authoring_graph",
    "convert_or_raise",
    "load_authoring_project",
    "migrate_legacy_story",
    "to_legacy_format",
    "validate_story_graph",
]
