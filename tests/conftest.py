"""Pytest configuration and shared fixtures."""

import pytest


@pytest.fixture
def sample_sheet_rows() -> list[list[str]]:
    """Header row plus post URLs in column A, view counts in column B."""
    return [
        ["url", "views"],
        ["https://x.com/someone/status/101", ""],
        ["https://twitter.com/someone/status/102", ""],
        ["not a link", ""],
        ["https://x.com/i/web/status/104", "9"],
        ["", ""],
        ["https://x.com/someone/status/106?s=20", ""],
    ]
