"""Backoff policies for retry handling."""

import random
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field


def jittered_delay(
    attempt: int,
    initial: float,
    maximum: float,
    rng: Callable[[], float] = random.random,
) -> float:
    """Exponential delay with multiplicative jitter.

    base = initial * 2 ^ (attempt - 1), scaled by a factor drawn uniformly
    from [0.5, 1.0) and clamped to maximum.

    Args:
        attempt: The attempt number (1-indexed)
        initial: Delay for the first attempt, in seconds
        maximum: Upper bound, in seconds
        rng: Source of uniform floats in [0, 1)

    Returns:
        Delay in seconds, always within [0, maximum]
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    base = initial * (2 ** (attempt - 1))
    delay = base * (0.5 + 0.5 * rng())
    return max(0.0, min(delay, maximum))


def rate_limit_delay(consecutive_rate_limits: int, initial: float, maximum: float) -> float:
    """Fallback cooldown when a 429 carries no timing headers.

    delay = initial * 2 ^ consecutive_rate_limits, clamped to maximum.
    """
    return max(0.0, min(initial * (2**consecutive_rate_limits), maximum))


class BackoffPolicy(ABC):
    """Abstract base for backoff policies.

    A backoff policy determines how long to wait between retry attempts.
    """

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay for the next retry attempt.

        Args:
            attempt: The attempt number that just failed (1-indexed)

        Returns:
            Delay in seconds before the next attempt
        """
        ...


@dataclass
class ExponentialBackoff(BackoffPolicy):
    """Exponential backoff with multiplicative jitter.

    Example with initial=1.0, max_delay=60.0:
        attempt 1: 0.5s - 1.0s
        attempt 2: 1.0s - 2.0s
        attempt 3: 2.0s - 4.0s
        ...
        attempt 7+: capped at 60s
    """

    initial: float = 1.0
    max_delay: float = 60.0
    rng: Callable[[], float] = field(default=random.random, repr=False)

    def next_delay(self, attempt: int) -> float:
        return jittered_delay(attempt, self.initial, self.max_delay, self.rng)

    def midpoint(self, attempt: int) -> float:
        """Expected delay (jitter factor 0.75), clamped to max_delay."""
        return min(self.initial * (2 ** (attempt - 1)) * 0.75, self.max_delay)
