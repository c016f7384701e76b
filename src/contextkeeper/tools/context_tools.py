"""Context tools exposed to the coding assistant.

These functions are registered as MCP tools by `contextkeeper.server` and
called directly by the CLI.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from contextkeeper.aggregator import collect_context
from contextkeeper.models import WorkState, parse_todo
from contextkeeper.renderer import DEFAULT_LEVEL, render
from contextkeeper.workstate import WorkStateStore

if TYPE_CHECKING:
    from contextkeeper.config import ContextKeeperConfig

logger = logging.getLogger(__name__)

SAVE_FAILED_PREFIX = "Failed to save work state"


def now_iso() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


def get_context_tools(config: ContextKeeperConfig) -> dict[str, Callable[..., str]]:
    """Return a dict of tool_name -> callable for context operations."""
    store = WorkStateStore(config.work_state_file)

    def get_dev_context(level: str = DEFAULT_LEVEL) -> str:
        """Collect the development environment and render it at `level`."""
        snapshot = collect_context(config)
        return render(snapshot, level)

    def save_work_state(
        summary: str,
        files: list[str] | None = None,
        notes: str | None = None,
        todos: list[dict[str, Any]] | None = None,
    ) -> str:
        """Replace the saved work state with a new manual snapshot."""
        files = files or []
        if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
            return f"{SAVE_FAILED_PREFIX}: files must be a list of strings"
        if notes is not None and not isinstance(notes, str):
            return f"{SAVE_FAILED_PREFIX}: notes must be a string"
        if todos is not None and not isinstance(todos, list):
            return f"{SAVE_FAILED_PREFIX}: todos must be a list"
        try:
            items = tuple(parse_todo(t) for t in todos or [])
        except ValueError as e:
            return f"{SAVE_FAILED_PREFIX}: {e}"

        state = WorkState(
            saved_at=now_iso(),
            trigger="manual",
            task_summary=summary,
            working_files=tuple(files),
            notes=notes or "",
            todos=items,
        )
        try:
            store.save(state)
        except OSError as e:
            logger.error("Cannot write %s: %s", store.path, e)
            return f"{SAVE_FAILED_PREFIX}: {e}"

        parts = [f"Work state saved ({len(state.working_files)} files, {len(items)} todos)"]
        parts.append(f"Task: {summary[:80]}")
        return "\n".join(parts)

    return {
        "get_dev_context": get_dev_context,
        "save_work_state": save_work_state,
    }
