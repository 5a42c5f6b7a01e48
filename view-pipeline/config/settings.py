"""Application settings using Pydantic. No side effects at import time."""

from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CURSOR_FILE_NAME,
    DATA_DIR,
    DEFAULT_API_CALL_DELAY,
    DEFAULT_BATCH_DELAY,
    DEFAULT_BATCH_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    INITIAL_RETRY_DELAY,
    MAX_ITEMS_PER_RUN,
    MAX_RETRIES,
    MAX_RETRY_DELAY,
    RATE_LIMIT_ABORT_THRESHOLD,
    X_API_BASE_URL,
)


@dataclass(frozen=True)
class RunConfig:
    """Tuning values for one collection run.

    Built once from Settings at run start and handed to the fetcher and
    scheduler explicitly. All delays are in seconds.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    max_retries: int = MAX_RETRIES
    initial_retry_delay: float = INITIAL_RETRY_DELAY
    max_retry_delay: float = MAX_RETRY_DELAY
    api_call_delay: float = DEFAULT_API_CALL_DELAY
    batch_delay: float = DEFAULT_BATCH_DELAY
    rate_limit_abort_threshold: int = RATE_LIMIT_ABORT_THRESHOLD
    max_items_per_run: int = MAX_ITEMS_PER_RUN

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.rate_limit_abort_threshold < 1:
            raise ValueError(
                f"rate_limit_abort_threshold must be >= 1, got {self.rate_limit_abort_threshold}"
            )

    def with_overrides(self, **overrides: object) -> "RunConfig":
        """Return a copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


class Settings(BaseSettings):
    """Application settings with validation.

    Settings are loaded from environment variables and .env file.
    No side effects at class definition time - .env is loaded only when
    Settings() is instantiated.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars
    )

    # === X API ===
    x_bearer_token: str | None = None
    x_api_base_url: str = X_API_BASE_URL
    request_timeout: Annotated[float, Field(gt=0)] = DEFAULT_REQUEST_TIMEOUT

    # === Rate Limits ===
    batch_size: Annotated[int, Field(gt=0)] = DEFAULT_BATCH_SIZE
    max_retries: Annotated[int, Field(gt=0)] = MAX_RETRIES
    initial_retry_delay: Annotated[float, Field(ge=0)] = INITIAL_RETRY_DELAY
    max_retry_delay: Annotated[float, Field(ge=0)] = MAX_RETRY_DELAY
    api_call_delay: Annotated[float, Field(ge=0)] = DEFAULT_API_CALL_DELAY
    batch_delay: Annotated[float, Field(ge=0)] = DEFAULT_BATCH_DELAY
    rate_limit_abort_threshold: Annotated[int, Field(gt=0)] = RATE_LIMIT_ABORT_THRESHOLD
    max_items_per_run: Annotated[int, Field(gt=0)] = MAX_ITEMS_PER_RUN

    # === Paths ===
    data_dir: Path = DATA_DIR

    @property
    def sheets_dir(self) -> Path:
        """Directory of CSV sheets (one file per sheet)."""
        return self.data_dir / "sheets"

    @property
    def cursor_file(self) -> Path:
        """JSON file holding resume cursors for every sheet."""
        return self.data_dir / CURSOR_FILE_NAME

    @property
    def has_x_api(self) -> bool:
        """Check if X API credentials are configured."""
        return bool(self.x_bearer_token)

    def run_config(self) -> RunConfig:
        """Snapshot the tuning values into an explicit RunConfig."""
        return RunConfig(
            batch_size=self.batch_size,
            max_retries=self.max_retries,
            initial_retry_delay=self.initial_retry_delay,
            max_retry_delay=self.max_retry_delay,
            api_call_delay=self.api_call_delay,
            batch_delay=self.batch_delay,
            rate_limit_abort_threshold=self.rate_limit_abort_threshold,
            max_items_per_run=self.max_items_per_run,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    This is the recommended way to access settings to avoid
    repeated .env file parsing.
    """
    return Settings()
