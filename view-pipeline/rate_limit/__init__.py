"""Rate limiting, retry and resume infrastructure for view collection."""

from .backoff import (
    BackoffPolicy,
    ExponentialBackoff,
    jittered_delay,
    rate_limit_delay,
)
from .fetcher import RetryingFetcher
from .progress import ResumeCursor, filter_after
from .scheduler import BatchScheduler, partition
from .state import RateLimitState

__all__ = [
    # Backoff policies
    "BackoffPolicy",
    "ExponentialBackoff",
    "jittered_delay",
    "rate_limit_delay",
    # State
    "RateLimitState",
    # Fetching and scheduling
    "RetryingFetcher",
    "BatchScheduler",
    "partition",
    # Resume
    "ResumeCursor",
    "filter_after",
]
