"""Error hierarchy for the view pipeline.

Per-item problems are reported as Failure values, never raised. The errors
here are setup-level faults that stop a whole run and reach the caller.
All pipeline errors inherit from PipelineError.
"""

from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base error for all pipeline errors.

    Attributes:
        message: Error description
        sheet: Related sheet name (if applicable)
    """

    def __init__(self, message: str, *, sheet: str | None = None) -> None:
        self.sheet = sheet
        super().__init__(message)


class ConfigurationError(PipelineError):
    """Required configuration is missing or invalid (e.g. no bearer token)."""


class SheetNotFoundError(PipelineError):
    """The requested sheet does not exist in the workbook."""

    def __init__(self, message: str = "Sheet not found", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ResumeStateError(PipelineError):
    """The resume cursor file exists but cannot be read or parsed."""
