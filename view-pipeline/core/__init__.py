"""Core infrastructure for the view pipeline."""

from .errors import (
    ConfigurationError,
    PipelineError,
    ResumeStateError,
    SheetNotFoundError,
)
from .types import (
    ApiReply,
    ErrorKind,
    Failure,
    FetchOutcome,
    ReplyKind,
    RunResult,
    RunStatus,
    Success,
    WorkItem,
)

__all__ = [
    # Errors
    "PipelineError",
    "ConfigurationError",
    "SheetNotFoundError",
    "ResumeStateError",
    # Types
    "ApiReply",
    "ErrorKind",
    "Failure",
    "FetchOutcome",
    "ReplyKind",
    "RunResult",
    "RunStatus",
    "Success",
    "WorkItem",
]
