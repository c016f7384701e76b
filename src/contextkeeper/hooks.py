"""Assistant hook entry points.

Usage (Claude Code hooks):
    PreCompact:            python -m contextkeeper hook pre-compact
    PostToolUse (Bash):    python -m contextkeeper hook record-command

Both read the hook payload (a JSON object) from stdin and must return quickly.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from contextkeeper.config import ContextKeeperConfig
from contextkeeper.models import WorkState
from contextkeeper.tools.context_tools import now_iso
from contextkeeper.workstate import WorkStateStore

logger = logging.getLogger(__name__)

PLACEHOLDER_SUMMARY = "(no task summary saved before context compaction)"


def parse_payload(raw: str) -> dict[str, Any]:
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Hook payload is not JSON, ignoring it")
        return {}
    return data if isinstance(data, dict) else {}


def pre_compact(
    config: ContextKeeperConfig, payload: dict[str, Any], trigger: str = "pre_compact"
) -> WorkState:
    """Re-save the current work state stamped with the hook trigger.

    Task content is carried over from the existing snapshot; the file is
    still replaced whole.
    """
    store = WorkStateStore(config.work_state_file)
    previous = store.load()
    logger.info(
        "PreCompact hook (session=%s, compact trigger=%s)",
        payload.get("session_id", "?"),
        payload.get("trigger", "?"),
    )

    state = WorkState(
        saved_at=now_iso(),
        trigger=trigger,
        task_summary=previous.task_summary if previous else PLACEHOLDER_SUMMARY,
        working_files=previous.working_files if previous else (),
        notes=previous.notes if previous else "",
        todos=previous.todos if previous else (),
    )
    store.save(state)
    return state


def extract_command(payload: dict[str, Any]) -> str:
    if payload.get("tool_name", "Bash") != "Bash":
        return ""
    tool_input = payload.get("tool_input") or {}
    command = tool_input.get("command") if isinstance(tool_input, dict) else None
    return command.strip() if isinstance(command, str) else ""


def record_command(config: ContextKeeperConfig, payload: dict[str, Any]) -> bool:
    """Append the payload's shell command to the history log. Returns False if skipped."""
    command = extract_command(payload)
    if not command:
        return False

    entry = {
        "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "command": command,
        "cwd": str(payload.get("cwd") or config.cwd),
    }
    log_file: Path = config.history_file
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with log_file.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    return True
