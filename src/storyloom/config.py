"""Project configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from ruamel.yaml import YAML

CONFIG_FILENAME = "storyloom.yaml"

DEFAULT_STORAGE_BACKEND: Literal["sqlite", "memory"] = "sqlite"
DEFAULT_STORAGE_PATH = "saves.db"
DEFAULT_MAX_SAVES = 10
DEFAULT_SAVE_PREFIX = "storyloom-save-"
DEFAULT_SESSION_KEY = "storyloom-session"
DEFAULT_RESTART_LABEL = "Restart"


@dataclass
class StorageConfig:
    """Where the key-value store lives.

    Resolution order for each field:
    1. Environment variable (STORYLOOM_STORAGE_BACKEND, STORYLOOM_STORAGE_PATH)
    2. Project config (storage.backend, storage.path)
    3. Defaults
    """

    backend: Literal["sqlite", "memory"] = DEFAULT_STORAGE_BACKEND
    path: str = DEFAULT_STORAGE_PATH

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StorageConfig:
        backend = os.getenv("STORYLOOM_STORAGE_BACKEND") or data.get(
            "backend", DEFAULT_STORAGE_BACKEND
        )
        if backend not in ("sqlite", "memory"):
            msg = f"storage.backend must be 'sqlite' or 'memory', got {backend!r}"
            raise ValueError(msg)
        path = os.getenv("STORYLOOM_STORAGE_PATH") or data.get("path", DEFAULT_STORAGE_PATH)
        return cls(backend=backend, path=str(path))

    def resolve_path(self, project_path: Path) -> Path:
        """Return the storage path, relative paths anchored at the project."""
        path = Path(self.path)
        return path if path.is_absolute() else project_path / path


@dataclass
class SavesConfig:
    """Save slot retention and key namespacing."""

    max_saves: int = DEFAULT_MAX_SAVES
    key_prefix: str = DEFAULT_SAVE_PREFIX

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SavesConfig:
        raw_max = os.getenv("STORYLOOM_MAX_SAVES") or data.get("max_saves", DEFAULT_MAX_SAVES)
        max_saves = int(raw_max)
        if max_saves < 1:
            msg = f"saves.max_saves must be at least 1, got {max_saves}"
            raise ValueError(msg)
        return cls(
            max_saves=max_saves,
            key_prefix=str(data.get("key_prefix", DEFAULT_SAVE_PREFIX)),
        )


@dataclass
class ProjectConfig:
    """Configuration for a StoryLoom project."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    saves: SavesConfig = field(default_factory=SavesConfig)
    session_key: str = DEFAULT_SESSION_KEY
    restart_label: str = DEFAULT_RESTART_LABEL

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectConfig:
        """Create config from a parsed YAML mapping.

        Args:
            data: Mapping with optional storage, saves, session and
                converter sections.

        Returns:
            ProjectConfig instance.
        """
        session_data = dict(data.get("session") or {})
        converter_data = dict(data.get("converter") or {})
        return cls(
            storage=StorageConfig.from_dict(dict(data.get("storage") or {})),
            saves=SavesConfig.from_dict(dict(data.get("saves") or {})),
            session_key=str(session_data.get("storage_key", DEFAULT_SESSION_KEY)),
            restart_label=str(converter_data.get("restart_label", DEFAULT_RESTART_LABEL)),
        )


class ConfigError(Exception):
    """Raised when project configuration exists but cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load config at {path}: {reason}")


def load_project_config(project_path: Path) -> ProjectConfig:
    """Load configuration from storyloom.yaml, falling back to defaults.

    Args:
        project_path: Path to the project root directory.

    Returns:
        ProjectConfig instance. Defaults (plus environment overrides) when
        the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a valid config.
    """
    config_path = project_path / CONFIG_FILENAME

    if not config_path.exists():
        try:
            return ProjectConfig.from_dict({})
        except ValueError as e:
            raise ConfigError(config_path, str(e)) from e

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(config_path, "Top-level value must be a mapping")
        return ProjectConfig.from_dict(data)
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(config_path, str(e)) from e
