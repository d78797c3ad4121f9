"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from storyloom.persistence.store import MemoryKeyValueStore
from tests.fixtures.story_fixtures import make_node

if TYPE_CHECKING:
    from collections.abc import Callable

    from storyloom.models.story import StoryNode


@pytest.fixture
def linear_story() -> list[StoryNode]:
    """start -> middle -> end, end restarts."""
    return [
        make_node("start", "middle"),
        make_node("middle", "end"),
        make_node("end", "-1"),
    ]


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def ticking_clock() -> Callable[[], datetime]:
    """Clock that advances one second per call, from 2024-01-01 UTC."""
    current = datetime(2024, 1, 1, tzinfo=UTC)

    def tick() -> datetime:
        nonlocal current
        current += timedelta(seconds=1)
        return current

    return tick
