"""Fetch one view count with retries, backoff and rate-limit cooldowns.

Every outcome is returned as a value. The retry counter is ordinary loop
state; nothing is raised to drive a retry.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable

from config import RunConfig
from core.types import ApiReply, ErrorKind, Failure, FetchOutcome, ReplyKind, Success
from observability.logger import get_logger, log_context
from sources.base import ViewCountSource

from .backoff import BackoffPolicy, ExponentialBackoff, rate_limit_delay
from .state import RateLimitState

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


class RetryingFetcher:
    """Performs one logical "get views for post X" operation.

    Usage:
        fetcher = RetryingFetcher(client, settings.run_config())
        state = RateLimitState()

        outcome = await fetcher.fetch("1790000000000000000", state)
    """

    def __init__(
        self,
        source: ViewCountSource,
        config: RunConfig,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.time,
        rng: Callable[[], float] = random.random,
        backoff: BackoffPolicy | None = None,
    ) -> None:
        self.source = source
        self.config = config
        self._sleep = sleep
        self._clock = clock
        self._backoff = backoff or ExponentialBackoff(
            initial=config.initial_retry_delay,
            max_delay=config.max_retry_delay,
            rng=rng,
        )

    async def fetch(self, post_id: str, state: RateLimitState) -> FetchOutcome:
        """Fetch the view count for a post, mutating `state` in place.

        Args:
            post_id: Post identifier to query
            state: Rate-limit state of the current run

        Returns:
            Success with the count, or Failure with the last observed reason
        """
        threshold = self.config.rate_limit_abort_threshold

        with log_context(post_id=post_id):
            await self._wait_for_cooldown(state)
            if state.reached(threshold):
                logger.warning(
                    f"Rate-limit abort threshold ({threshold}) already reached, not calling API"
                )
                return Failure(
                    ErrorKind.RATE_LIMITED,
                    rate_limited=True,
                    detail=f"abort threshold of {threshold} consecutive rate limits reached",
                )

            last = Failure(ErrorKind.UNEXPECTED_STATUS, detail="no attempt made")
            max_retries = self.config.max_retries

            for attempt in range(1, max_retries + 1):
                if attempt > 1:
                    await self._wait_for_cooldown(state)

                reply = await self.source.fetch_view_count(post_id)

                if reply.kind == ReplyKind.OK and reply.value is not None:
                    state.record_success()
                    if attempt > 1:
                        logger.debug(f"Succeeded on attempt {attempt}/{max_retries}")
                    return Success(reply.value)

                if reply.kind == ReplyKind.RATE_LIMITED:
                    now = self._clock()
                    wait = self._cooldown_for(reply, state.consecutive_rate_limits + 1, now)
                    state.record_rate_limit(now, wait)
                    last = Failure(ErrorKind.RATE_LIMITED, rate_limited=True, detail=reply.detail)
                    logger.warning(
                        f"Rate limited ({state.consecutive_rate_limits} in a row), "
                        f"cooling down {wait:.1f}s",
                        extra={"attempt": attempt},
                    )
                    if state.consecutive_rate_limits > threshold:
                        return Failure(
                            ErrorKind.RATE_LIMITED,
                            rate_limited=True,
                            detail=f"{state.consecutive_rate_limits} consecutive rate limits",
                        )
                    continue

                last = self._failure_from(reply)
                if attempt < max_retries:
                    delay = self._backoff.next_delay(attempt)
                    logger.info(
                        f"Retry {attempt}/{max_retries} after {delay:.1f}s",
                        extra={"error": last.reason.value},
                    )
                    await self._sleep(delay)

            logger.warning(
                f"Max retries ({max_retries}) exhausted",
                extra={"error": last.reason.value},
            )
            return Failure(
                last.reason,
                rate_limited=state.consecutive_rate_limits > 0,
                detail=last.detail,
            )

    async def _wait_for_cooldown(self, state: RateLimitState) -> None:
        """Block until an active cooldown has elapsed (not a retry)."""
        remaining = state.cooldown_remaining(self._clock())
        if remaining > 0:
            logger.info(f"Waiting {remaining:.1f}s for rate-limit cooldown")
            await self._sleep(remaining)

    def _cooldown_for(self, reply: ApiReply, consecutive: int, now: float) -> float:
        """Pick the cooldown for a 429: Retry-After, then reset time, then exponential."""
        if reply.retry_after is not None:
            wait = reply.retry_after
        elif reply.reset_at is not None:
            wait = max(0.0, reply.reset_at - now)
        else:
            wait = rate_limit_delay(
                consecutive, self.config.initial_retry_delay, self.config.max_retry_delay
            )
        return min(max(0.0, wait), self.config.max_retry_delay)

    @staticmethod
    def _failure_from(reply: ApiReply) -> Failure:
        if reply.kind == ReplyKind.UNAVAILABLE:
            # 503 is only retried; once attempts run out it reports as a status error
            return Failure(ErrorKind.UNEXPECTED_STATUS, detail=reply.detail)
        if reply.kind == ReplyKind.OK:
            # OK without a value means the record was missing
            return Failure(ErrorKind.MALFORMED_RESPONSE, detail=reply.detail or "no view count")
        return Failure(reply.error_kind or ErrorKind.MALFORMED_RESPONSE, detail=reply.detail)
