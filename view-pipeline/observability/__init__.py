"""Observability infrastructure for the view pipeline.

Provides structured logging and run metrics.
"""

from .logger import LogContext, get_logger, log_context, setup_logging
from .metrics import RunMetrics

__all__ = [
    "LogContext",
    "get_logger",
    "log_context",
    "setup_logging",
    "RunMetrics",
]
