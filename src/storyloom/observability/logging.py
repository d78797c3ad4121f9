"""Logging setup for StoryLoom.

Library modules log through ``get_logger(__name__)`` with snake_case event
names and keyword context. ``configure_logging`` routes every event, from
structlog or plain stdlib loggers, through one structlog processor chain
into two sinks:

- console: Rich on stderr, ``event key=value`` text, level set by ``-v``;
- file (optional): one JSON object per line, always at DEBUG.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import EventDict, Processor

LOG_DIRNAME = "logs"
LOG_FILENAME = "storyloom.jsonl"

_VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)

# Dependencies whose DEBUG output is noise next to story events
_QUIET_LOGGERS = ("asyncio", "markdown_it")

_configured = False
_file_handler: logging.FileHandler | None = None


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _drop_handler_fields(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    """Rich already prints time, level and source."""
    for key in ("timestamp", "level", "logger"):
        event_dict.pop(key, None)
    return event_dict


def _console_handler(level: int, verbosity: int) -> RichHandler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
        level=level,
    )
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _drop_handler_fields,
                structlog.dev.ConsoleRenderer(colors=False),
            ],
        )
    )
    return handler


def _jsonl_handler(path: Path) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.dict_tracebacks,
                structlog.processors.JSONRenderer(ensure_ascii=False),
            ],
        )
    )
    return handler


def project_log_file(project_path: Path) -> Path:
    """Where ``storyloom --log`` writes for a project."""
    return project_path / LOG_DIRNAME / LOG_FILENAME


def configure_logging(verbosity: int = 0, log_file: Path | None = None) -> None:
    """Configure console and optional JSON-lines file logging.

    Safe to call repeatedly; a previously opened log file is closed first.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG on the console.
        log_file: Append every event, DEBUG included, to this file.
    """
    global _configured, _file_handler

    close_file_logging()

    console_level = _VERBOSITY_LEVELS[min(max(verbosity, 0), len(_VERBOSITY_LEVELS) - 1)]
    handlers: list[logging.Handler] = [_console_handler(console_level, verbosity)]
    if log_file is not None:
        _file_handler = _jsonl_handler(log_file)
        handlers.append(_file_handler)

    # The file sink wants everything; the console handler filters itself
    root_level = logging.DEBUG if log_file is not None else console_level
    logging.basicConfig(level=root_level, handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Structured logger for a module. Configures WARNING console logging on first use."""
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def close_file_logging() -> None:
    """Close the JSON-lines log file, if one is open."""
    global _file_handler
    if _file_handler is not None:
        logging.getLogger().removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
