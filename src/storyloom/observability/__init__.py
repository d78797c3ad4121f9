"""Observability module for StoryLoom.

Provides structured logging with console and JSON-lines file output.
"""

from storyloom.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    project_log_file,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "project_log_file",
]
