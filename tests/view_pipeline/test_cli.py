"""Tests for view-pipeline/cli/main.py.

Commands run through typer's CliRunner with settings pointed at a
temporary data directory and the X API client swapped for a scripted one.
"""

import logging
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

# Add view-pipeline to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "view-pipeline"))

from cli import main as cli_main
from config import Settings
from core.errors import ConfigurationError
from core.types import ApiReply
from rate_limit.progress import ResumeCursor

from .fixtures.fakes import ScriptedSource, post_url, read_rows, write_sheet

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI installs its own handler on the pipeline logger; undo it."""
    yield
    root = logging.getLogger("view_pipeline")
    root.handlers.clear()
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture
def settings(tmp_path) -> Settings:
    settings = Settings(
        _env_file=None,
        x_bearer_token="token",
        data_dir=tmp_path,
        api_call_delay=0,
        batch_delay=0,
        initial_retry_delay=0,
        max_retry_delay=0,
        rate_limit_abort_threshold=2,
    )
    settings.sheets_dir.mkdir()
    return settings


@pytest.fixture
def use_settings(settings):
    with patch.object(cli_main, "get_settings", return_value=settings):
        yield settings


def fake_client(source: ScriptedSource):
    """Stand-in for XApiClient that yields the scripted source."""

    class FakeClient:
        def __init__(self, bearer_token, base_url=None, timeout=30.0):
            if not bearer_token:
                raise ConfigurationError("X API bearer token not configured.")

        async def __aenter__(self):
            return source

        async def __aexit__(self, *exc):
            return None

    return FakeClient


class TestCollectCommand:
    """Tests for `view-pipeline collect`."""

    def test_success(self, use_settings):
        path = write_sheet(
            use_settings.sheets_dir,
            "campaign",
            [["url", "views"], [post_url(101), ""], [post_url(102), ""]],
        )
        source = ScriptedSource({"101": [ApiReply.ok(1500)]})

        with patch.object(cli_main, "XApiClient", fake_client(source)):
            result = runner.invoke(cli_main.app, ["collect", "campaign"])

        assert result.exit_code == 0, result.output
        assert "Run Summary (campaign)" in result.output
        assert [row[1] for row in read_rows(path)[1:]] == ["1,500", "102"]

    def test_rate_limit_exits_2(self, use_settings):
        write_sheet(
            use_settings.sheets_dir,
            "campaign",
            [["url", "views"]] + [[post_url(101 + i), ""] for i in range(4)],
        )
        source = ScriptedSource({"102": [ApiReply.rate_limited()] * 5})

        with patch.object(cli_main, "XApiClient", fake_client(source)):
            result = runner.invoke(cli_main.app, ["collect", "campaign", "--quiet"])

        assert result.exit_code == 2
        assert "Progress saved" in result.output
        assert ResumeCursor(use_settings.cursor_file).read("campaign") == 2

    def test_missing_sheet_exits_1(self, use_settings):
        result = runner.invoke(cli_main.app, ["collect", "ghost"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_missing_token_exits_1(self, use_settings):
        write_sheet(use_settings.sheets_dir, "campaign", [["url"], [post_url(101)]])

        use_settings.x_bearer_token = None

        result = runner.invoke(cli_main.app, ["collect", "campaign"])

        assert result.exit_code == 1
        assert "bearer token" in result.output

    def test_invalid_batch_size_exits_1(self, use_settings):
        result = runner.invoke(cli_main.app, ["collect", "campaign", "--batch-size", "0"])

        assert result.exit_code == 1
        assert "Invalid option" in result.output


    @pytest.mark.parametrize("option", ["--input-column", "--output-column"])
    def test_invalid_column_exits_1(self, use_settings, option):
        write_sheet(use_settings.sheets_dir, "campaign", [["url"], [post_url(101)]])

        result = runner.invoke(cli_main.app, ["collect", "campaign", option, "A1"])

        assert result.exit_code == 1
        assert "Invalid column" in result.output


class TestStateCommands:
    """Tests for status / reset / summary / version."""

    def test_status_lists_cursors(self, use_settings):
        write_sheet(use_settings.sheets_dir, "campaign", [["url"]])
        ResumeCursor(use_settings.cursor_file).write("campaign", 41)

        result = runner.invoke(cli_main.app, ["status"])

        assert result.exit_code == 0
        assert "campaign" in result.output
        assert "41" in result.output

    def test_reset_clears_cursor(self, use_settings):
        ResumeCursor(use_settings.cursor_file).write("campaign", 41)

        result = runner.invoke(cli_main.app, ["reset", "campaign"])

        assert result.exit_code == 0
        assert ResumeCursor(use_settings.cursor_file).read("campaign") is None

    def test_reset_without_progress(self, use_settings):
        result = runner.invoke(cli_main.app, ["reset", "campaign"])

        assert result.exit_code == 0
        assert "No saved progress" in result.output

    def test_summary_totals(self, use_settings):
        write_sheet(use_settings.sheets_dir, "a", [["url", "views"], ["u", "1,000"]])
        write_sheet(use_settings.sheets_dir, "b", [["url", "views"], ["u", "2,500"]])

        result = runner.invoke(cli_main.app, ["summary"])

        assert result.exit_code == 0
        assert "3,500" in result.output

    def test_summary_missing_sheet(self, use_settings):
        result = runner.invoke(cli_main.app, ["summary", "ghost"])

        assert result.exit_code == 1

    def test_version(self):
        result = runner.invoke(cli_main.app, ["version"])

        assert result.exit_code == 0
        assert cli_main.__version__ in result.output
