"""Tests for view-pipeline/collectors/view_collector.py.

End-to-end collection over a real CSV workbook and cursor file, with the
API scripted and time faked.
"""

import sys
from dataclasses import replace
from pathlib import Path

import pytest

# Add view-pipeline to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "view-pipeline"))

from collectors.view_collector import ViewCountCollector
from core.errors import SheetNotFoundError
from core.types import ApiReply, ErrorKind, RunStatus
from rate_limit.progress import ResumeCursor
from storage.sheet import Workbook

from .fixtures.fakes import ScriptedSource, post_url, read_rows, write_sheet

SHEET = "campaign"


@pytest.fixture
def campaign(sheets_dir) -> Path:
    """Header row, then posts 101-105 on rows 2-6 with empty view cells."""
    rows = [["url", "views"]] + [[post_url(101 + i), ""] for i in range(5)]
    return write_sheet(sheets_dir, SHEET, rows)


@pytest.fixture
def cursors(tmp_path) -> ResumeCursor:
    return ResumeCursor(tmp_path / "resume_cursors.json")


def make_collector(sheets_dir, cursors, source, config, clock):
    return ViewCountCollector(
        Workbook(sheets_dir),
        cursors,
        source,
        config,
        sleep=clock.sleep,
        clock=clock,
        rng=lambda: 0.5,
    )


def view_column(path: Path) -> list[str]:
    return [row[1] for row in read_rows(path)[1:]]


class CursorSpySource(ScriptedSource):
    """Records the stored cursor at the moment of each API call."""

    def __init__(self, cursors: ResumeCursor, scripts=None):
        super().__init__(scripts)
        self.cursors = cursors
        self.cursor_at_call: dict[str, int | None] = {}

    async def fetch_view_count(self, post_id):
        self.cursor_at_call[post_id] = self.cursors.read(SHEET)
        return await super().fetch_view_count(post_id)


# =============================================================================
# Complete Runs
# =============================================================================


class TestCompleteRun:
    """Tests for runs that finish the sheet."""

    @pytest.mark.asyncio
    async def test_writes_counts_and_clears_cursor(
        self, sheets_dir, campaign, cursors, run_config, clock
    ):
        source = ScriptedSource({"101": [ApiReply.ok(1234567)]})
        collector = make_collector(sheets_dir, cursors, source, run_config, clock)

        report = await collector.collect(SHEET)

        assert report.candidates == 5
        assert report.result.status == RunStatus.COMPLETED
        assert view_column(campaign) == ["1,234,567", "102", "103", "104", "105"]
        assert cursors.read(SHEET) is None
        assert report.cursor_after is None
        assert report.finished_sheet
        assert report.metrics.successful == 5

    @pytest.mark.asyncio
    async def test_second_run_has_nothing_to_do(
        self, sheets_dir, campaign, cursors, run_config, clock
    ):
        """A completed sheet yields no candidates on the next run."""
        source = ScriptedSource()
        await make_collector(sheets_dir, cursors, source, run_config, clock).collect(SHEET)

        report = await make_collector(sheets_dir, cursors, source, run_config, clock).collect(SHEET)

        assert report.candidates == 0
        assert report.result.outcomes == []
        assert len(source.calls) == 5

    @pytest.mark.asyncio
    async def test_filled_rows_skipped_unless_refetching(
        self, sheets_dir, cursors, run_config, clock
    ):
        path = write_sheet(
            sheets_dir,
            SHEET,
            [["url", "views"], [post_url(101), ""], [post_url(102), "50"], [post_url(103), ""]],
        )
        source = ScriptedSource()

        report = await make_collector(sheets_dir, cursors, source, run_config, clock).collect(SHEET)

        assert report.candidates == 2
        assert source.calls == ["101", "103"]
        assert view_column(path) == ["101", "50", "103"]

        report = await make_collector(sheets_dir, cursors, source, run_config, clock).collect(
            SHEET, only_missing=False
        )

        assert report.candidates == 3
        assert view_column(path) == ["101", "102", "103"]

    @pytest.mark.asyncio
    async def test_invalid_rows_left_empty(self, sheets_dir, cursors, run_config, clock):
        path = write_sheet(
            sheets_dir,
            SHEET,
            [["url", "views"], [post_url(101), ""], ["see thread", ""], [post_url(103), ""]],
        )
        source = ScriptedSource()

        report = await make_collector(sheets_dir, cursors, source, run_config, clock).collect(SHEET)

        assert view_column(path) == ["101", "", "103"]
        assert report.metrics.errors_by_type == {ErrorKind.INVALID_IDENTIFIER.value: 1}
        assert report.metrics.failed_rows == {ErrorKind.INVALID_IDENTIFIER.value: [3]}

    @pytest.mark.asyncio
    async def test_custom_columns_and_start_row(self, sheets_dir, cursors, run_config, clock):
        path = write_sheet(
            sheets_dir,
            SHEET,
            [["title", "", "link", ""], ["Launch", "", post_url(201), ""]],
        )
        source = ScriptedSource()

        await make_collector(sheets_dir, cursors, source, run_config, clock).collect(
            SHEET, input_column="C", output_column="D", start_row=2
        )

        assert read_rows(path)[1] == ["Launch", "", post_url(201), "201"]

    @pytest.mark.asyncio
    async def test_missing_sheet(self, sheets_dir, cursors, run_config, clock):
        collector = make_collector(sheets_dir, cursors, ScriptedSource(), run_config, clock)

        with pytest.raises(SheetNotFoundError):
            await collector.collect("ghost")


# =============================================================================
# Resume Behaviour
# =============================================================================


class TestResume:
    """Tests for cursor handling across runs."""

    @pytest.mark.asyncio
    async def test_abort_saves_resume_point(
        self, sheets_dir, campaign, cursors, run_config, clock
    ):
        """Post 103 (row 4) keeps hitting 429: resume point is row 3."""
        source = ScriptedSource({"103": [ApiReply.rate_limited()] * 5})

        report = await make_collector(sheets_dir, cursors, source, run_config, clock).collect(SHEET)

        assert report.rate_limit_hit
        assert not report.finished_sheet
        assert report.cursor_after == 3
        assert cursors.read(SHEET) == 3
        assert view_column(campaign) == ["101", "102", "", "", ""]
        assert report.metrics.skipped == 2
        assert "104" not in source.calls

    @pytest.mark.asyncio
    async def test_next_run_resumes_at_aborting_row(
        self, sheets_dir, campaign, cursors, run_config, clock
    ):
        first = ScriptedSource({"103": [ApiReply.rate_limited()] * 5})
        await make_collector(sheets_dir, cursors, first, run_config, clock).collect(SHEET)

        second = ScriptedSource()
        report = await make_collector(sheets_dir, cursors, second, run_config, clock).collect(SHEET)

        assert report.cursor_before == 3
        assert second.calls == ["103", "104", "105"]
        assert view_column(campaign) == ["101", "102", "103", "104", "105"]
        assert cursors.read(SHEET) is None

    @pytest.mark.asyncio
    async def test_abort_on_first_row_keeps_stored_cursor(
        self, sheets_dir, campaign, cursors, run_config, clock
    ):
        cursors.write(SHEET, 3)
        source = ScriptedSource({"103": [ApiReply.rate_limited()] * 5})

        report = await make_collector(sheets_dir, cursors, source, run_config, clock).collect(SHEET)

        assert report.rate_limit_hit
        assert report.result.last_processed_position is None
        assert cursors.read(SHEET) == 3

    @pytest.mark.asyncio
    async def test_cursor_checkpointed_after_each_batch(
        self, sheets_dir, campaign, cursors, run_config, clock
    ):
        """Batch size 3: by the time row 5 is fetched, rows 2-4 are checkpointed."""
        source = CursorSpySource(cursors)

        await make_collector(sheets_dir, cursors, source, run_config, clock).collect(SHEET)

        assert source.cursor_at_call == {
            "101": None,
            "102": None,
            "103": None,
            "104": 4,
            "105": 4,
        }

    @pytest.mark.asyncio
    async def test_capped_runs_walk_the_sheet(
        self, sheets_dir, campaign, cursors, run_config, clock
    ):
        config = replace(run_config, max_items_per_run=2)
        source = ScriptedSource()

        first = await make_collector(sheets_dir, cursors, source, config, clock).collect(SHEET)
        assert first.capped
        assert first.cursor_after == 3

        second = await make_collector(sheets_dir, cursors, source, config, clock).collect(SHEET)
        assert second.capped
        assert cursors.read(SHEET) == 5

        third = await make_collector(sheets_dir, cursors, source, config, clock).collect(SHEET)
        assert not third.capped
        assert third.finished_sheet
        assert cursors.read(SHEET) is None
        assert source.calls == ["101", "102", "103", "104", "105"]

    @pytest.mark.asyncio
    async def test_reset_ignores_stored_cursor(
        self, sheets_dir, campaign, cursors, run_config, clock
    ):
        cursors.write(SHEET, 5)
        source = ScriptedSource()

        report = await make_collector(sheets_dir, cursors, source, run_config, clock).collect(
            SHEET, reset=True
        )

        assert report.cursor_before is None
        assert report.candidates == 5

    @pytest.mark.asyncio
    async def test_ragged_sheet(self, sheets_dir, cursors, run_config, clock):
        """A notes column that only some rows use does not break collection."""
        path = sheets_dir / f"{SHEET}.csv"
        path.write_text(f"url\n{post_url(101)}\n{post_url(102)},note\n")
        source = ScriptedSource()

        report = await make_collector(sheets_dir, cursors, source, run_config, clock).collect(
            SHEET, output_column="C"
        )

        assert report.metrics.successful == 2
        assert read_rows(path)[1:] == [[post_url(101), "", "101"], [post_url(102), "note", "102"]]
