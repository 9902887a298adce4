"""Logging configuration for the ordering service.

structlog renders JSON in production and a coloured console view
everywhere else. Records from standard library loggers (protean, uvicorn,
httpx) go through the same structlog renderer, so one stream carries the
service's own events and its libraries' output alike.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

QUIET_LOGGERS = ("protean", "httpx", "httpcore", "asyncio")

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def _environment() -> str:
    return (os.getenv("PROTEAN_ENV") or os.getenv("ENVIRONMENT") or "development").lower()


def get_log_level() -> str:
    """Get log level based on environment."""
    level_map = {
        "production": "INFO",
        "staging": "INFO",
        "development": "DEBUG",
        "test": "WARNING",
    }

    return os.getenv("LOG_LEVEL", level_map.get(_environment(), "INFO"))


def renders_json() -> bool:
    """``LOG_FORMAT`` (json|console) overrides the environment default."""
    log_format = os.getenv("LOG_FORMAT")
    if log_format:
        return log_format.lower() == "json"
    return _environment() in ("production", "staging")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer():
    if renders_json():
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
    )


def _rotating_file(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def build_handlers(log_level: str, log_dir: str | None = None) -> list[logging.Handler]:
    """stdout always; ``orderflow.log`` and ``orderflow_error.log`` under ``log_dir``."""
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    handlers = [console]

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating_file(path / "orderflow.log", log_level))
        handlers.append(_rotating_file(path / "orderflow_error.log", logging.ERROR))

    return handlers


def setup_stdlib_logging() -> None:
    """Attach the handlers to the root logger, formatting through structlog."""
    log_level = get_log_level()
    processors = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if renders_json():
        # The console renderer formats exceptions itself
        processors.append(structlog.processors.format_exc_info)
    processors.append(_renderer())
    formatter = structlog.stdlib.ProcessorFormatter(foreign_pre_chain=_shared_processors(), processors=processors)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []
    for handler in build_handlers(log_level, os.getenv("LOG_DIR")):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            ),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    """Configure all logging for the application. Call once at startup."""
    setup_stdlib_logging()
    setup_structlog()


def add_context(**kwargs: Any) -> None:
    """Bind context variables included in all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
