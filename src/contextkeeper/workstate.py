"""Single-slot work-state persistence.

One JSON file holds the most recent snapshot. Every save replaces it whole;
there is no merge, no history and no locking (last writer wins).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from contextkeeper.models import WorkState

logger = logging.getLogger(__name__)


class WorkStateStore:
    """Read/write access to the saved work state."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def save(self, state: WorkState) -> None:
        """Overwrite the snapshot. Raises OSError if the file cannot be written."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(state.to_dict(), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        logger.info("Work state saved to %s (trigger=%s)", self.path, state.trigger)

    def load(self) -> WorkState | None:
        """Return the saved snapshot, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return WorkState.from_dict(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
            logger.warning("Ignoring unreadable work state %s: %s", self.path, e)
            return None

    def clear(self) -> bool:
        """Delete the snapshot. Returns False if there was none."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Work state cleared: %s", self.path)
        return True
