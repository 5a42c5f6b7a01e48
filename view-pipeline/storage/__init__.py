"""Sheet storage for post URLs and view counts."""

from .sheet import Sheet, Workbook, column_index, format_count, parse_count
from .summary import ViewTotals, aggregate_views

__all__ = [
    "Sheet",
    "Workbook",
    "column_index",
    "format_count",
    "parse_count",
    "ViewTotals",
    "aggregate_views",
]
