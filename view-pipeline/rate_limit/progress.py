"""Resume cursors: where each sheet's last run stopped."""

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from core.errors import ResumeStateError
from core.types import WorkItem
from observability.logger import get_logger

logger = get_logger(__name__)


def filter_after(items: Iterable[WorkItem], position: int | None) -> list[WorkItem]:
    """Keep items strictly after `position` (all items when None), preserving order."""
    if position is None:
        return list(items)
    return [item for item in items if item.position > position]


@dataclass
class ResumeCursor:
    """Persist the last processed row per sheet so runs can resume.

    All cursors live in one JSON object keyed by sheet name and are
    written with write-to-temp-then-rename, so an interrupted process
    never leaves a half-written file behind.

    File format: {"<sheet>": <last processed row>, ...}
    """

    path: Path
    _cursors: dict[str, int] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        """Load existing cursors from file."""
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ResumeStateError(f"Cannot read resume cursors from {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ResumeStateError(f"Resume cursor file {self.path} is not a JSON object")

        self._cursors = {str(k): int(v) for k, v in data.items()}
        logger.info(f"Loaded {len(self._cursors)} resume cursors from {self.path}")

    def read(self, key: str) -> int | None:
        """Last processed position for a sheet, or None."""
        return self._cursors.get(key)

    def write(self, key: str, position: int) -> None:
        """Record the last processed position for a sheet and save."""
        self._cursors[key] = position
        self._save()
        logger.debug(f"Saved cursor {key}={position}")

    def clear(self, key: str) -> None:
        """Forget a sheet's cursor (after a complete run, or a fresh start)."""
        if self._cursors.pop(key, None) is not None:
            self._save()
            logger.info(f"Cleared resume cursor for {key}")

    def items(self) -> dict[str, int]:
        """Snapshot of every stored cursor."""
        return dict(self._cursors)

    def _save(self) -> None:
        """Save cursors atomically.

        Uses write-to-temp-then-rename pattern for atomic writes.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.path.with_suffix(".tmp")

        try:
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(self._cursors, f, indent=2, sort_keys=True)
            # Atomic rename
            tmp_file.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to save resume cursors: {e}")
            if tmp_file.exists():
                tmp_file.unlink()
            raise

    def __contains__(self, key: str) -> bool:
        return key in self._cursors

    def __len__(self) -> int:
        return len(self._cursors)
