"""Shared types for the view pipeline.

Fetch results are plain values: a fetch produces exactly one FetchOutcome,
either Success or Failure, and the scheduler pairs it with its WorkItem.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union


class ErrorKind(str, Enum):
    """Why a work item did not produce a view count."""

    INVALID_IDENTIFIER = "invalid_identifier"  # No post ID in the cell - not retried
    RATE_LIMITED = "rate_limited"  # 429 - retried up to the abort threshold
    SERVICE_UNAVAILABLE = "service_unavailable"  # 503 reply - retried, never a final reason
    MALFORMED_RESPONSE = "malformed_response"  # Bad JSON or no matching record
    NETWORK_FAULT = "network_fault"  # Connection error or timeout
    UNEXPECTED_STATUS = "unexpected_status"  # Any other HTTP status
    SKIPPED_FOR_RETRY = "skipped_for_retry"  # Never attempted: run aborted early


class ReplyKind(str, Enum):
    """Classification of a single HTTP exchange with the API."""

    OK = "ok"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


class RunStatus(str, Enum):
    """Scheduler run lifecycle."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED_ON_RATE_LIMIT = "aborted_on_rate_limit"


@dataclass(frozen=True)
class WorkItem:
    """One sheet row waiting to be processed.

    Attributes:
        position: 1-based row number in the sheet
        source_text: Raw cell text (normally a post URL)
    """

    position: int
    source_text: str


@dataclass(frozen=True)
class Success:
    """The API returned a view count."""

    value: int

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """No view count was obtained for the item."""

    reason: ErrorKind
    rate_limited: bool = False
    detail: str = ""

    @property
    def is_success(self) -> bool:
        return False


FetchOutcome = Union[Success, Failure]


@dataclass(frozen=True)
class ApiReply:
    """One classified response from the view-count endpoint.

    Attributes:
        kind: Response class (ok, rate limited, unavailable, error)
        value: View count when kind is OK
        retry_after: Seconds from a Retry-After header
        reset_at: Epoch seconds from a rate-limit reset header
        error_kind: Failure classification when kind is ERROR
        status: HTTP status, if a response was received
        detail: Human-readable description for logs and failures
    """

    kind: ReplyKind
    value: int | None = None
    retry_after: float | None = None
    reset_at: float | None = None
    error_kind: ErrorKind | None = None
    status: int | None = None
    detail: str = ""

    @classmethod
    def ok(cls, value: int, status: int = 200) -> ApiReply:
        return cls(kind=ReplyKind.OK, value=value, status=status)

    @classmethod
    def rate_limited(
        cls,
        retry_after: float | None = None,
        reset_at: float | None = None,
        detail: str = "429 Too Many Requests",
    ) -> ApiReply:
        return cls(
            kind=ReplyKind.RATE_LIMITED,
            retry_after=retry_after,
            reset_at=reset_at,
            error_kind=ErrorKind.RATE_LIMITED,
            status=429,
            detail=detail,
        )

    @classmethod
    def unavailable(cls, detail: str = "503 Service Unavailable") -> ApiReply:
        return cls(
            kind=ReplyKind.UNAVAILABLE,
            error_kind=ErrorKind.SERVICE_UNAVAILABLE,
            status=503,
            detail=detail,
        )

    @classmethod
    def error(cls, error_kind: ErrorKind, detail: str, status: int | None = None) -> ApiReply:
        return cls(kind=ReplyKind.ERROR, error_kind=error_kind, status=status, detail=detail)


@dataclass
class RunResult:
    """Result of one scheduler run.

    Holds one outcome per input item, in input order.
    """

    outcomes: list[tuple[WorkItem, FetchOutcome]] = field(default_factory=list)
    status: RunStatus = RunStatus.IDLE
    last_processed_position: int | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def aborted(self) -> bool:
        """Whether the run stopped early on rate limiting."""
        return self.status == RunStatus.ABORTED_ON_RATE_LIMIT

    @property
    def duration_seconds(self) -> float:
        """Wall-clock duration of the run."""
        if self.started_at is None or self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds()

    @property
    def succeeded(self) -> list[tuple[WorkItem, Success]]:
        return [(item, o) for item, o in self.outcomes if isinstance(o, Success)]

    @property
    def failed(self) -> list[tuple[WorkItem, Failure]]:
        return [(item, o) for item, o in self.outcomes if isinstance(o, Failure)]

    @property
    def skipped(self) -> list[WorkItem]:
        """Items never attempted because the run aborted."""
        return [
            item
            for item, o in self.outcomes
            if isinstance(o, Failure) and o.reason == ErrorKind.SKIPPED_FOR_RETRY
        ]

    def failures_by_reason(self) -> dict[ErrorKind, list[WorkItem]]:
        """Group failed items by reason, preserving order within each group."""
        groups: dict[ErrorKind, list[WorkItem]] = {}
        for item, outcome in self.failed:
            groups.setdefault(outcome.reason, []).append(item)
        return groups
