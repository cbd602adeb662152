"""Structured logging for SceneWeaver.

Engine modules log through ``get_logger(__name__)`` with a snake_case
event name and keyword context::

    log.info("fragment_spliced", story_id=story.id, new_scenes=2)

Events are routed through the stdlib ``logging`` tree and rendered by
structlog's ``ProcessorFormatter``:

- console: rich handler on stderr, level picked by the -v count
- file (``--log <dir>``): one JSON object per event in ``<dir>/logs/debug.jsonl``
"""

from __future__ import annotations

import logging
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

LOG_FILENAME = "debug.jsonl"

_CONSOLE_LEVELS = {0: logging.WARNING, 1: logging.INFO}

_configured = False
_file_handler: logging.FileHandler | None = None
_logs_dir: Path | None = None

# Applied to structlog events before they reach a handler, and to records
# from plain stdlib loggers when they are formatted.
_SHARED_PROCESSORS: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _render_console(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> str:
    """Render ``event key=value ...``; rich prints time and level itself."""
    event = str(event_dict.pop("event", ""))
    event_dict.pop("level", None)
    event_dict.pop("timestamp", None)
    context = " ".join(f"{key}={value!r}" for key, value in event_dict.items())
    return f"{event} {context}" if context else event


def _uppercase_level(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    if "level" in event_dict:
        event_dict["level"] = str(event_dict["level"]).upper()
    return event_dict


def _console_handler(verbosity: int) -> RichHandler:
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
        level=_CONSOLE_LEVELS.get(verbosity, logging.DEBUG),
    )
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _render_console,
            ],
        )
    )
    return handler


def _jsonl_handler(path: Path) -> logging.FileHandler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.add_logger_name,
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _uppercase_level,
                structlog.processors.EventRenamer("message"),
                structlog.processors.JSONRenderer(default=str),
            ],
        )
    )
    return handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure console and optional file logging.

    Safe to call again; the previous configuration is replaced.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG on the console.
        log_to_file: Also write every event, DEBUG and up, as JSONL.
        log_dir: Base directory for the file log. Required if log_to_file=True.

    Raises:
        ValueError: If log_to_file=True but log_dir is not provided.
    """
    global _configured, _file_handler, _logs_dir

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()
    handlers: list[logging.Handler] = [_console_handler(verbosity)]

    if log_to_file and log_dir is not None:
        _logs_dir = log_dir / "logs"
        _logs_dir.mkdir(parents=True, exist_ok=True)
        _file_handler = _jsonl_handler(_logs_dir / LOG_FILENAME)
        handlers.append(_file_handler)

    # Handlers filter on their own level; the root stays open when anything
    # below WARNING is wanted somewhere.
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, handlers=handlers, force=True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.typing.FilteringBoundLogger:
    """Return a bound logger, configuring defaults on first use.

    Args:
        name: Logger name (typically __name__).
        **initial_context: Key/value pairs bound to every event.
    """
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name, **initial_context)
    return logger


def get_logs_dir() -> Path | None:
    """Directory holding the JSONL log, or None when file logging is off."""
    return _logs_dir


def close_file_logging() -> None:
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
