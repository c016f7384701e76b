"""Recent relevant shell commands from the JSONL history log."""

from __future__ import annotations

import json
import logging
import re
from collections import deque
from pathlib import Path

from contextkeeper.config import ContextKeeperConfig
from contextkeeper.models import HistoryEntry

logger = logging.getLogger(__name__)


def compile_patterns(patterns: list[str]) -> list[re.Pattern[str]]:
    """Compile patterns, dropping the ones that are not valid regexes."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.warning("Ignoring invalid history pattern %r: %s", pattern, e)
    return compiled


def parse_history_line(line: str) -> HistoryEntry | None:
    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(record, dict):
        return None
    command = record.get("command")
    if not isinstance(command, str) or not command:
        return None
    timestamp = record.get("timestamp")
    return HistoryEntry(
        timestamp=timestamp if isinstance(timestamp, str) else "",
        command=command,
    )


def filter_history(
    lines, patterns: list[re.Pattern[str]], max_entries: int
) -> list[HistoryEntry]:
    """Keep parseable lines whose command matches any pattern (all if none).

    Lines are chronological; only the last `max_entries` matches are returned.
    """
    recent: deque[HistoryEntry] = deque(maxlen=max(max_entries, 0))
    skipped = 0
    for line in lines:
        if not line.strip():
            continue
        entry = parse_history_line(line)
        if entry is None:
            skipped += 1
            continue
        if patterns and not any(p.search(entry.command) for p in patterns):
            continue
        recent.append(entry)
    if skipped:
        logger.debug("Skipped %d malformed history lines", skipped)
    return list(recent)


def read_history(path: Path, patterns: list[str], max_entries: int) -> list[HistoryEntry]:
    if not path.is_file():
        return []
    compiled = compile_patterns(patterns)
    try:
        with path.open(encoding="utf-8", errors="replace") as f:
            return filter_history(f, compiled, max_entries)
    except OSError as e:
        logger.debug("Cannot read history log %s: %s", path, e)
        return []


def collect_command_history(config: ContextKeeperConfig) -> list[HistoryEntry]:
    history = config.history
    if not history.enabled:
        return []
    return read_history(config.history_file, history.patterns, history.max_entries)
