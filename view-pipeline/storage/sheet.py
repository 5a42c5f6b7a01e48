"""CSV-backed sheets: a workbook is a directory, each sheet one CSV file.

Cells are addressed spreadsheet-style: rows are 1-based, columns are
letters (A, B, ..., Z, AA, ...). No header row is assumed; callers choose
the start row.
"""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from core.errors import SheetNotFoundError
from core.types import WorkItem
from observability.logger import get_logger

logger = get_logger(__name__)

_COLUMN_RE = re.compile(r"^[A-Za-z]{1,3}$")


def column_index(column: str) -> int:
    """Convert a column letter to a 0-based index ("A" -> 0, "AA" -> 26)."""
    if not _COLUMN_RE.match(column):
        raise ValueError(f"Invalid column: {column!r}")
    index = 0
    for char in column.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def format_count(value: int) -> str:
    """Format a view count with thousands separators (1234567 -> "1,234,567")."""
    return f"{value:,}"


def parse_count(text: str) -> int | None:
    """Parse a thousands-separated count, returning None if it is not one."""
    cleaned = text.strip().replace(",", "")
    if not cleaned.isdigit():
        return None
    return int(cleaned)


@dataclass
class Sheet:
    """One CSV file treated as a grid of text cells.

    Every write rewrites the file via temp-then-rename so a killed process
    leaves either the old or the new file, never a partial one.
    """

    name: str
    path: Path
    _grid: pd.DataFrame = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._grid = self._load()

    def _load(self) -> pd.DataFrame:
        # Rows may differ in length; size the grid to the widest one
        with open(self.path, newline="", encoding="utf-8") as f:
            width = max((len(row) for row in csv.reader(f)), default=0)
        if width == 0:
            return pd.DataFrame(dtype=str)

        grid = pd.read_csv(
            self.path,
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
        )
        # Blank lines come back as NaN rows
        return grid.fillna("")

    @property
    def row_count(self) -> int:
        return len(self._grid.index)

    def get(self, row: int, column: str) -> str:
        """Cell text, or "" when outside the populated grid."""
        r, c = row - 1, column_index(column)
        if r < 0 or r >= len(self._grid.index) or c >= len(self._grid.columns):
            return ""
        return str(self._grid.iat[r, c])

    def read_items(self, column: str, start_row: int = 1) -> list[WorkItem]:
        """Non-empty cells of a column from start_row down, as WorkItems in row order."""
        c = column_index(column)
        if c >= len(self._grid.columns):
            return []

        items = []
        for r in range(max(start_row, 1) - 1, len(self._grid.index)):
            text = str(self._grid.iat[r, c]).strip()
            if text:
                items.append(WorkItem(position=r + 1, source_text=text))
        return items

    def write_value(self, row: int, column: str, value: int) -> None:
        """Write a count to a cell, formatted with thousands separators, and save."""
        self.set(row, column, format_count(value))
        self.save()

    def set(self, row: int, column: str, text: str) -> None:
        """Set a cell in memory, growing the grid as needed."""
        if row < 1:
            raise ValueError(f"Row must be >= 1, got {row}")
        r, c = row - 1, column_index(column)

        if c >= len(self._grid.columns):
            for new_col in range(len(self._grid.columns), c + 1):
                self._grid[new_col] = ""
        if r >= len(self._grid.index):
            filler = pd.DataFrame(
                "", index=range(len(self._grid.index), r + 1), columns=self._grid.columns
            )
            self._grid = pd.concat([self._grid, filler])

        self._grid.iat[r, c] = text

    def save(self) -> None:
        """Write the grid back to disk atomically."""
        tmp_file = self.path.with_suffix(".tmp")
        try:
            self._grid.to_csv(tmp_file, header=False, index=False)
            tmp_file.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to save sheet {self.name}: {e}")
            if tmp_file.exists():
                tmp_file.unlink()
            raise


@dataclass
class Workbook:
    """Directory of CSV sheets."""

    directory: Path

    def sheet_path(self, name: str) -> Path:
        return self.directory / f"{name}.csv"

    def sheet_names(self) -> list[str]:
        """Names of all sheets, sorted."""
        if not self.directory.is_dir():
            return []
        return sorted(p.stem for p in self.directory.glob("*.csv"))

    def sheet(self, name: str) -> Sheet:
        """Open a sheet.

        Raises:
            SheetNotFoundError: If no CSV exists for the name
        """
        path = self.sheet_path(name)
        if not path.is_file():
            raise SheetNotFoundError(f"Sheet '{name}' not found at {path}", sheet=name)
        return Sheet(name=name, path=path)
