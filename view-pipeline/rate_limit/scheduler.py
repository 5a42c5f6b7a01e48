"""Batch scheduler: sequential fetches in fixed-size batches with early abort."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import TypeVar

from config import RunConfig
from core.types import ErrorKind, Failure, FetchOutcome, RunResult, RunStatus, WorkItem
from observability.logger import get_logger, log_context

from .fetcher import RetryingFetcher, Sleep
from .state import RateLimitState

logger = get_logger(__name__)

T = TypeVar("T")

# (row text) -> post ID, or None when the text holds no usable identifier
IdExtractor = Callable[[str], str | None]
OutcomeCallback = Callable[[WorkItem, FetchOutcome], Awaitable[None]]
BatchCallback = Callable[[int], Awaitable[None]]


def partition(items: Sequence[T], batch_size: int) -> list[list[T]]:
    """Split items into contiguous batches of at most batch_size, keeping order."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


class BatchScheduler:
    """Runs the fetcher over work items batch by batch.

    One RateLimitState is shared by the whole run: rate-limit pressure is a
    property of the run, not of a batch. When consecutive rate limits reach
    the abort threshold the run stops, every unattempted item is marked
    SKIPPED_FOR_RETRY, and last_processed_position points at the item before
    the one that tripped the abort so the next run retries it.

    A scheduler runs once: idle -> running -> completed | aborted_on_rate_limit.
    """

    def __init__(
        self,
        fetcher: RetryingFetcher,
        config: RunConfig,
        extract_id: IdExtractor,
        *,
        sleep: Sleep = asyncio.sleep,
        on_outcome: OutcomeCallback | None = None,
        on_batch_complete: BatchCallback | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.config = config
        self.extract_id = extract_id
        self._sleep = sleep
        self._on_outcome = on_outcome
        self._on_batch_complete = on_batch_complete
        self.status = RunStatus.IDLE
        self.state = RateLimitState()

    async def run(self, items: Sequence[WorkItem]) -> RunResult:
        """Process items in order and return one outcome per item.

        Args:
            items: Work items, already filtered by the resume cursor

        Returns:
            RunResult with outcomes in input order
        """
        if self.status != RunStatus.IDLE:
            raise RuntimeError(f"Scheduler already used (status={self.status.value})")

        self.status = RunStatus.RUNNING
        result = RunResult(status=self.status, started_at=datetime.now())
        batches = partition(items, self.config.batch_size)
        threshold = self.config.rate_limit_abort_threshold
        previous: WorkItem | None = None

        logger.info(
            f"Starting run: {len(items)} items in {len(batches)} batches "
            f"(batch_size={self.config.batch_size})"
        )

        for batch_index, batch in enumerate(batches):
            with log_context(batch_index=batch_index, batch_size=len(batch)):
                for i, item in enumerate(batch):
                    outcome = await self._process(item)
                    result.outcomes.append((item, outcome))
                    if self._on_outcome is not None:
                        await self._on_outcome(item, outcome)

                    if self.state.reached(threshold):
                        remaining = [rest for b in batches[batch_index:] for rest in b]
                        remaining = remaining[i + 1 :]
                        return self._abort(result, item, previous, remaining)

                    previous = item
                    if i < len(batch) - 1:
                        await self._sleep(self.config.api_call_delay)

                if self._on_batch_complete is not None:
                    await self._on_batch_complete(batch[-1].position)

            if batch_index < len(batches) - 1:
                logger.debug(f"Batch {batch_index + 1}/{len(batches)} done, pausing")
                await self._sleep(self.config.batch_delay)

        self.status = RunStatus.COMPLETED
        result.status = self.status
        result.last_processed_position = items[-1].position if items else None
        result.ended_at = datetime.now()
        logger.info(f"Run completed: {len(result.succeeded)}/{len(items)} succeeded")
        return result

    async def _process(self, item: WorkItem) -> FetchOutcome:
        with log_context(position=item.position):
            post_id = self.extract_id(item.source_text)
            if post_id is None:
                logger.debug(f"No post ID in row {item.position}: {item.source_text!r}")
                return Failure(
                    ErrorKind.INVALID_IDENTIFIER,
                    detail=f"no post ID in {item.source_text!r}",
                )
            return await self.fetcher.fetch(post_id, self.state)

    def _abort(
        self,
        result: RunResult,
        aborting: WorkItem,
        previous: WorkItem | None,
        remaining: list[WorkItem],
    ) -> RunResult:
        for item in remaining:
            result.outcomes.append(
                (
                    item,
                    Failure(
                        ErrorKind.SKIPPED_FOR_RETRY,
                        rate_limited=True,
                        detail="run aborted on rate limiting",
                    ),
                )
            )
        self.status = RunStatus.ABORTED_ON_RATE_LIMIT
        result.status = self.status
        result.last_processed_position = previous.position if previous else None
        result.ended_at = datetime.now()
        logger.error(
            f"Max consecutive rate limits ({self.state.consecutive_rate_limits}) reached "
            f"at row {aborting.position}. Stopping; {len(remaining)} items skipped."
        )
        return result
