"""Rate-limit state shared by every fetch within one scheduler run."""

from dataclasses import dataclass


@dataclass
class RateLimitState:
    """Mutable rate-limit record owned by a single scheduler run.

    consecutive_rate_limits resets on any success and grows with each 429.
    cooldown_until is an epoch timestamp; once it lies in the past it is
    simply ignored, there is no explicit clear step.
    """

    consecutive_rate_limits: int = 0
    cooldown_until: float | None = None

    def record_success(self) -> None:
        self.consecutive_rate_limits = 0

    def record_rate_limit(self, now: float, wait: float) -> None:
        """Count a 429 and start a cooldown of `wait` seconds from `now`."""
        self.consecutive_rate_limits += 1
        self.cooldown_until = now + max(0.0, wait)

    def cooldown_remaining(self, now: float) -> float:
        """Seconds left in the active cooldown (0 when none)."""
        if self.cooldown_until is None:
            return 0.0
        return max(0.0, self.cooldown_until - now)

    def is_cooling_down(self, now: float) -> bool:
        return self.cooldown_remaining(now) > 0

    def reached(self, threshold: int) -> bool:
        """Whether consecutive rate limits are at or above the threshold."""
        return self.consecutive_rate_limits >= threshold
