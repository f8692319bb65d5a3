"""
Logging Setup.

structlog on top of the standard logging module. Records go to stderr, so
whatever a command prints on stdout stays machine readable, and optionally
to a rotating JSONL file. Settings come from config/settings/logging.yaml.

A command binds its context once (source, command name, notes root) and
every record logged while it runs carries those fields, including records
from the I/O thread pool, which copies the caller's contextvars.

JSON record fields:
    timestamp   - ISO 8601 UTC timestamp
    level       - debug, info, warning, error or critical
    logger      - Module path (e.g., kbnotes.services.note)
    event       - Log message
    func_name   - Function that emitted the record
    lineno      - Line number in source file
    source, command, notes_root - bound by the CLI

Usage:
    from kbnotes.core.logging import bind_log_context, get_logger, setup_logging

    setup_logging(level="DEBUG")
    bind_log_context(source="cli", command="check")

    logger = get_logger(__name__)
    logger.warning("Malformed note metadata", extra={"path": "a.md", "offset": 12})
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from kbnotes.core.config import _load_validated, find_project_root
from kbnotes.core.config_schema import FileHandlerSchema, LoggingSchema

_logging_config: LoggingSchema | None = None


def _load_logging_config() -> LoggingSchema:
    """
    Load config/settings/logging.yaml, once.

    Read on its own rather than through AppConfig so a broken notes.yaml
    can still be logged about.

    Raises:
        FileNotFoundError: If logging.yaml does not exist
        ValueError: If it does not match LoggingSchema
    """
    global _logging_config
    if _logging_config is None:
        _logging_config = _load_validated(LoggingSchema, "logging.yaml")
    return _logging_config


def _merge_extra(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    # extra={...} fields become top-level keys; bound context wins on clashes
    extra = event_dict.pop("extra", None)
    if isinstance(extra, dict):
        for key, value in extra.items():
            event_dict.setdefault(key, value)
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        _merge_extra,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
    ]


def _formatter(renderer: Processor) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=_shared_processors(),
    )


def _console_handler(format_type: str) -> logging.Handler:
    if format_type == "console":
        renderer: Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_formatter(renderer))
    return handler


def _file_handler(file_config: FileHandlerSchema) -> logging.Handler:
    # relative paths are taken from the project root
    log_path = find_project_root() / file_config.path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=file_config.max_bytes,
        backupCount=file_config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    return handler


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    config: LoggingSchema | None = None,
) -> None:
    """
    Configure structlog and the root logger's handlers.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Log level name. Overrides the configured level.
        format_type: Console rendering, 'console' or 'json'. Overrides config.
        config: Settings to use instead of logging.yaml
    """
    config = config or _load_logging_config()

    handlers: list[logging.Handler] = []
    if config.handlers.console.enabled:
        handlers.append(_console_handler(format_type or config.format))
    if config.handlers.file.enabled:
        handlers.append(_file_handler(config.handlers.file))

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or config.level).upper()))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root_logger.addHandler(handler)


def bind_log_context(**fields: Any) -> None:
    """Attach fields to every record logged from the current context."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> Any:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name, typically __name__

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
