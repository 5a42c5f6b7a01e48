"""Structured logger for the view pipeline.

Provides context-aware logging with optional JSON formatting.

Usage:
    from observability import get_logger, log_context

    logger = get_logger(__name__)

    with log_context(sheet="campaign", batch_index=3):
        logger.info("Starting batch", extra={"items": 10})
        # JSON output: {"timestamp": "...", "sheet": "campaign", "batch_index": 3, "message": "...", "items": 10}
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "view_pipeline"

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
        "markup",
        "highlighter",
    }
)


@dataclass(frozen=True)
class LogContext:
    """Context for structured logging.

    Attributes are automatically included in all log messages
    within this context.
    """

    sheet: str | None = None
    batch_index: int | None = None
    batch_size: int | None = None
    position: int | None = None
    post_id: str | None = None
    correlation_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}


# Context variable to store current log context
_log_context: contextvars.ContextVar[LogContext] = contextvars.ContextVar(
    "log_context",
    default=LogContext(),
)

_CONTEXT_FIELDS = frozenset(f.name for f in fields(LogContext))


class _ContextManager:
    """Context manager for setting log context."""

    def __init__(self, **kwargs: Any) -> None:
        unknown = set(kwargs) - _CONTEXT_FIELDS
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        self.kwargs = kwargs
        self.token: contextvars.Token[LogContext] | None = None

    def __enter__(self) -> LogContext:
        # Merge with current context
        new_context = replace(_log_context.get(), **self.kwargs)
        self.token = _log_context.set(new_context)
        return new_context

    def __exit__(self, *args: Any) -> None:
        if self.token is not None:
            _log_context.reset(self.token)


def log_context(**kwargs: Any) -> _ContextManager:
    """Create a context manager for setting log context.

    Args:
        **kwargs: Context fields to set (sheet, batch_index, post_id, etc.)

    Returns:
        Context manager that sets the context

    Example:
        with log_context(sheet="campaign", position=12):
            logger.info("Fetching")
    """
    return _ContextManager(**kwargs)


def current_context() -> LogContext:
    """The log context active in the current task."""
    return _log_context.get()


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class StructuredFormatter(logging.Formatter):
    """JSON formatter with context support."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_log_context.get().to_dict())
        entry.update(_extras(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class PrettyFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = _log_context.get()

        prefix_parts = []
        if ctx.sheet:
            prefix_parts.append(f"[{ctx.sheet}]")
        if ctx.batch_index is not None:
            prefix_parts.append(f"[batch {ctx.batch_index + 1}]")
        if ctx.position is not None:
            prefix_parts.append(f"[row {ctx.position}]")

        prefix = " ".join(prefix_parts)
        if prefix:
            prefix += " "

        extras = [f"{key}={value}" for key, value in _extras(record).items()]
        extra_str = " | " + ", ".join(extras) if extras else ""

        formatted = f"{prefix}{record.getMessage()}{extra_str}"

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


# Track if logging has been set up
_logging_configured = False


def setup_logging(
    level: int = logging.INFO,
    json_format: bool = False,
    quiet: bool = False,
    console: Console | None = None,
    force: bool = False,
) -> None:
    """Set up logging for the pipeline.

    Args:
        level: Logging level (default: INFO)
        json_format: Use JSON lines on stderr (default: False, rich output)
        quiet: Suppress all output except errors (default: False)
        console: Rich console to render to (default: a stderr console)
        force: Reconfigure even if logging was already set up
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    root.handlers.clear()

    handler: logging.Handler
    if json_format:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter())
    else:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(PrettyFormatter())
    handler.setLevel(logging.ERROR if quiet else level)
    root.addHandler(handler)
    root.propagate = False

    # Suppress noisy loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger under the view_pipeline namespace
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
