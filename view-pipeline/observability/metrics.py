"""Run metrics for the view pipeline.

Summarises one scheduler run: counts, duration, and failures by reason.

Usage:
    from observability import RunMetrics

    metrics = RunMetrics.from_result("campaign", result)
    print(metrics.success_rate)  # 95.24
    print(metrics.to_summary())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from core.types import ErrorKind, RunResult, RunStatus


@dataclass
class RunMetrics:
    """Metrics for a single collection run."""

    sheet: str
    status: RunStatus = RunStatus.IDLE
    duration_seconds: float = 0.0

    # Counts
    total_items: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    rate_limited: int = 0

    # Failure breakdown by reason (skipped items excluded)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    failed_rows: dict[str, list[int]] = field(default_factory=dict)

    @classmethod
    def from_result(cls, sheet: str, result: RunResult) -> RunMetrics:
        metrics = cls(
            sheet=sheet,
            status=result.status,
            duration_seconds=result.duration_seconds,
            total_items=len(result.outcomes),
            successful=len(result.succeeded),
        )
        for reason, items in result.failures_by_reason().items():
            if reason == ErrorKind.SKIPPED_FOR_RETRY:
                metrics.skipped += len(items)
                continue
            metrics.failed += len(items)
            metrics.errors_by_type[reason.value] = len(items)
            metrics.failed_rows[reason.value] = [item.position for item in items]
        metrics.rate_limited = sum(1 for _, o in result.failed if o.rate_limited)
        return metrics

    @property
    def success_rate(self) -> float:
        """Success rate among attempted items, as percentage (0-100)."""
        attempted = self.total_items - self.skipped
        if attempted == 0:
            return 0.0
        return self.successful / attempted * 100

    @property
    def items_per_second(self) -> float:
        """Processing speed in items per second."""
        if self.duration_seconds == 0:
            return 0.0
        return (self.total_items - self.skipped) / self.duration_seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/storage."""
        return {
            "sheet": self.sheet,
            "status": self.status.value,
            "duration_seconds": round(self.duration_seconds, 2),
            "total_items": self.total_items,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "rate_limited": self.rate_limited,
            "success_rate": round(self.success_rate, 2),
            "errors_by_type": self.errors_by_type,
        }

    def to_summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            f"Run Summary ({self.sheet})",
            "=" * 40,
            f"Status: {self.status.value}",
            f"Duration: {self.duration_seconds:.1f}s",
            f"Total: {self.total_items} rows",
            f"Success: {self.successful} ({self.success_rate:.1f}%)",
            f"Failed: {self.failed}",
            f"Skipped: {self.skipped}",
        ]

        if self.rate_limited:
            lines.append(f"Rate limited: {self.rate_limited}")

        if self.errors_by_type:
            lines.append("")
            lines.append("Failures by Reason:")
            for error_type, count in sorted(self.errors_by_type.items(), key=lambda x: -x[1]):
                rows = ", ".join(str(r) for r in self.failed_rows.get(error_type, [])[:10])
                more = " ..." if len(self.failed_rows.get(error_type, [])) > 10 else ""
                lines.append(f"  {error_type}: {count} (rows {rows}{more})")

        return "\n".join(lines)
