"""Pytest fixtures for view pipeline tests."""

import sys
from pathlib import Path

import pytest

# Add view-pipeline to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "view-pipeline"))

from config import RunConfig

from .fixtures.fakes import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock; its sleep() advances time without waiting."""
    return FakeClock()


@pytest.fixture
def mid_rng():
    """Jitter source pinned to 0.5, so delays are exactly 0.75 x base."""
    return lambda: 0.5


@pytest.fixture
def run_config() -> RunConfig:
    """Small, deterministic tuning used by most scheduler tests."""
    return RunConfig(
        batch_size=3,
        max_retries=3,
        initial_retry_delay=1.0,
        max_retry_delay=60.0,
        api_call_delay=0.5,
        batch_delay=2.0,
        rate_limit_abort_threshold=2,
        max_items_per_run=100,
    )


@pytest.fixture
def sheets_dir(tmp_path) -> Path:
    """Empty workbook directory."""
    path = tmp_path / "sheets"
    path.mkdir()
    return path
