"""View-count collector for one sheet.

Ties the pieces together for a single invocation:
- Resume cursor lookup and filtering
- Per-run item cap
- Batch scheduling with retry and rate-limit handling
- Incremental writes of each view count back into the sheet
- Cursor checkpointing after every batch, cleanup after a complete pass
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from config import DEFAULT_INPUT_COLUMN, DEFAULT_OUTPUT_COLUMN, DEFAULT_START_ROW, RunConfig
from core.types import FetchOutcome, RunResult, Success, WorkItem
from observability.logger import get_logger, log_context
from observability.metrics import RunMetrics
from rate_limit.fetcher import Clock, RetryingFetcher, Sleep
from rate_limit.progress import ResumeCursor, filter_after
from rate_limit.scheduler import BatchScheduler, IdExtractor
from sources.base import ViewCountSource
from sources.urls import extract_post_id
from storage.sheet import Sheet, Workbook

logger = get_logger(__name__)


@dataclass
class CollectionReport:
    """What one collect() call did."""

    sheet: str
    result: RunResult
    metrics: RunMetrics
    cursor_before: int | None
    cursor_after: int | None
    candidates: int
    capped: bool = False

    @property
    def rate_limit_hit(self) -> bool:
        return self.result.aborted

    @property
    def finished_sheet(self) -> bool:
        """Whether the sheet has no rows left for a future run."""
        return not self.result.aborted and not self.capped


class ViewCountCollector:
    """Collects view counts for the post URLs in one sheet column."""

    def __init__(
        self,
        workbook: Workbook,
        cursors: ResumeCursor,
        source: ViewCountSource,
        config: RunConfig,
        *,
        extract_id: IdExtractor = extract_post_id,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.time,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.workbook = workbook
        self.cursors = cursors
        self.source = source
        self.config = config
        self.extract_id = extract_id
        self._sleep = sleep
        self._clock = clock
        self._rng = rng

    def pending_items(
        self,
        sheet: Sheet,
        input_column: str,
        output_column: str,
        start_row: int,
        only_missing: bool = False,
    ) -> list[WorkItem]:
        """Rows after the resume cursor, optionally only those without a count yet."""
        items = filter_after(
            sheet.read_items(input_column, start_row), self.cursors.read(sheet.name)
        )
        if only_missing:
            items = [item for item in items if not sheet.get(item.position, output_column).strip()]
        return items

    async def collect(
        self,
        sheet_name: str,
        input_column: str = DEFAULT_INPUT_COLUMN,
        output_column: str = DEFAULT_OUTPUT_COLUMN,
        start_row: int = DEFAULT_START_ROW,
        reset: bool = False,
        only_missing: bool = True,
    ) -> CollectionReport:
        """Fetch view counts for a sheet, resuming where the last run stopped.

        Args:
            sheet_name: Sheet (CSV file stem) to process
            input_column: Column holding post URLs
            output_column: Column to write view counts into
            start_row: First row to consider (1-based)
            reset: Drop the resume cursor and start from start_row
            only_missing: Skip rows whose output cell already has a value (set
                False to re-fetch every row after the cursor)

        Returns:
            CollectionReport with the run result and summary metrics

        Raises:
            SheetNotFoundError: If the sheet does not exist
        """
        with log_context(sheet=sheet_name):
            sheet = self.workbook.sheet(sheet_name)

            if reset:
                self.cursors.clear(sheet_name)
            cursor_before = self.cursors.read(sheet_name)

            candidates = self.pending_items(
                sheet, input_column, output_column, start_row, only_missing
            )
            capped = len(candidates) > self.config.max_items_per_run
            if capped:
                logger.info(
                    f"{len(candidates)} rows pending, limiting this run to "
                    f"{self.config.max_items_per_run}"
                )
                candidates = candidates[: self.config.max_items_per_run]

            if cursor_before is not None:
                logger.info(f"Resuming after row {cursor_before}: {len(candidates)} rows to process")

            async def write_outcome(item: WorkItem, outcome: FetchOutcome) -> None:
                if isinstance(outcome, Success):
                    sheet.write_value(item.position, output_column, outcome.value)

            async def checkpoint(position: int) -> None:
                self.cursors.write(sheet_name, position)

            fetcher = RetryingFetcher(
                self.source, self.config, sleep=self._sleep, clock=self._clock, rng=self._rng
            )
            scheduler = BatchScheduler(
                fetcher,
                self.config,
                self.extract_id,
                sleep=self._sleep,
                on_outcome=write_outcome,
                on_batch_complete=checkpoint,
            )
            result = await scheduler.run(candidates)

            cursor_after = self._settle_cursor(sheet_name, result, capped)
            metrics = RunMetrics.from_result(sheet_name, result)
            logger.info(
                f"Finished {sheet_name}: {metrics.successful} ok, {metrics.failed} failed, "
                f"{metrics.skipped} skipped",
                extra={"status": result.status.value},
            )

            return CollectionReport(
                sheet=sheet_name,
                result=result,
                metrics=metrics,
                cursor_before=cursor_before,
                cursor_after=cursor_after,
                candidates=len(candidates),
                capped=capped,
            )

    def _settle_cursor(
        self,
        sheet_name: str,
        result: RunResult,
        capped: bool,
    ) -> int | None:
        """Persist the final cursor for the run and return it."""
        if result.aborted:
            if result.last_processed_position is None:
                # Aborted on the very first row: keep whatever was stored
                return self.cursors.read(sheet_name)
            self.cursors.write(sheet_name, result.last_processed_position)
            logger.warning(
                f"Rate limit abort: resume point saved at row {result.last_processed_position}"
            )
            return result.last_processed_position

        if capped and result.last_processed_position is not None:
            self.cursors.write(sheet_name, result.last_processed_position)
            return result.last_processed_position

        self.cursors.clear(sheet_name)
        return None
