"""Cross-sheet view totals."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from .sheet import Workbook, parse_count


@dataclass
class ViewTotals:
    """Per-sheet view totals and the grand total."""

    per_sheet: dict[str, int] = field(default_factory=dict)
    counted_rows: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.per_sheet.values())


def aggregate_views(
    workbook: Workbook,
    sheet_names: Sequence[str],
    column: str,
    start_row: int = 1,
) -> ViewTotals:
    """Sum the view counts written in `column` of each sheet.

    Cells that are empty or not a (thousands-separated) integer are ignored.

    Raises:
        SheetNotFoundError: If any named sheet is missing
    """
    totals = ViewTotals()
    for name in sheet_names:
        sheet = workbook.sheet(name)
        values = [
            count
            for item in sheet.read_items(column, start_row)
            if (count := parse_count(item.source_text)) is not None
        ]
        totals.per_sheet[name] = sum(values)
        totals.counted_rows[name] = len(values)
    return totals
