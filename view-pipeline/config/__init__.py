"""Configuration module for the view pipeline."""

from .settings import RunConfig, Settings, get_settings
from .constants import (
    # Directories
    DATA_DIR,
    # Batching
    DEFAULT_BATCH_SIZE,
    MAX_ITEMS_PER_RUN,
    # Delays
    DEFAULT_API_CALL_DELAY,
    DEFAULT_BATCH_DELAY,
    INITIAL_RETRY_DELAY,
    MAX_RETRY_DELAY,
    # Rate limit
    MAX_RETRIES,
    RATE_LIMIT_ABORT_THRESHOLD,
    # Sheet layout
    DEFAULT_INPUT_COLUMN,
    DEFAULT_OUTPUT_COLUMN,
    DEFAULT_START_ROW,
)

__all__ = [
    "RunConfig",
    "Settings",
    "get_settings",
    "DATA_DIR",
    "DEFAULT_BATCH_SIZE",
    "MAX_ITEMS_PER_RUN",
    "DEFAULT_API_CALL_DELAY",
    "DEFAULT_BATCH_DELAY",
    "INITIAL_RETRY_DELAY",
    "MAX_RETRY_DELAY",
    "MAX_RETRIES",
    "RATE_LIMIT_ABORT_THRESHOLD",
    "DEFAULT_INPUT_COLUMN",
    "DEFAULT_OUTPUT_COLUMN",
    "DEFAULT_START_ROW",
]
